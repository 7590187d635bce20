import json
import textwrap
from pathlib import Path

from apinav.config import ExplorerConfig
from apinav.domain.models import ParameterSource
from apinav.extractors.aspnet.endpoint_detector import (
    capture_signature,
    detect_api_endpoint,
    detect_api_endpoint_in_file,
    parse_formal_parameter,
    split_parameters,
)
from apinav.project.config_cache import ProjectBaseUrlResolver


def _line_of(src: str, needle: str) -> int:
    for i, line in enumerate(src.split("\n"), start=1):
        if needle in line:
            return i
    raise AssertionError(f"{needle!r} not in source")


ORDERS = textwrap.dedent(
    """
    [ApiController]
    [Route("api/orders")]
    public class OrdersController : ControllerBase
    {
        [HttpGet("{id:int}")]
        public async Task<ActionResult<Order>> GetAsync(
            int id,
            [FromQuery] bool includeLines,
            CancellationToken cancellationToken)
        {
            return Ok();
        }

        [HttpPost]
        public IActionResult Create(OrderDto dto, [FromHeader] string tenant, CancellationToken ct = default) => Ok();

        [HttpGet]
        public IActionResult Search(string term, [FromRoute] int page, int? size = null) => Ok();

        [HttpDelete("{orderId}")]
        public IActionResult Delete(Guid orderId, [FromBody] DeleteReason reason) => Ok();

        public IActionResult NotAnAction() => Ok();
    }
    """
)


def _params(endpoint):
    return [(p.name, p.declared_type, p.source) for p in endpoint.parameters]


def test_multiline_signature_path_and_query_parameters():
    ep = detect_api_endpoint(ORDERS, _line_of(ORDERS, "GetAsync("))

    assert ep is not None
    assert ep.http_verb == "GET"
    assert ep.route_path == "/api/orders/{id:int}"
    assert ep.action_name == "GetAsync"
    assert _params(ep) == [
        ("id", "int", ParameterSource.PATH),
        ("includeLines", "bool", ParameterSource.QUERY),
    ]
    assert all(p.required for p in ep.parameters)


def test_post_defaults_to_body_and_from_header_wins():
    ep = detect_api_endpoint(ORDERS, _line_of(ORDERS, "IActionResult Create("))

    assert ep is not None
    assert ep.http_verb == "POST"
    assert _params(ep) == [
        ("dto", "OrderDto", ParameterSource.BODY),
        ("tenant", "string", ParameterSource.HEADER),
    ]


def test_from_route_and_get_default_query():
    ep = detect_api_endpoint(ORDERS, _line_of(ORDERS, "IActionResult Search("))

    assert ep is not None
    assert _params(ep) == [
        ("term", "string", ParameterSource.QUERY),
        ("page", "int", ParameterSource.PATH),
        ("size", "int?", ParameterSource.QUERY),
    ]
    # optional inference is off unless configured
    assert all(p.required for p in ep.parameters)


def test_placeholder_match_is_case_insensitive_and_from_body_overrides():
    ep = detect_api_endpoint(ORDERS, _line_of(ORDERS, "IActionResult Delete("))

    assert ep is not None
    assert ep.http_verb == "DELETE"
    assert _params(ep) == [
        ("orderId", "Guid", ParameterSource.PATH),
        ("reason", "DeleteReason", ParameterSource.BODY),
    ]


def test_optional_inference_when_enabled():
    config = ExplorerConfig(infer_optional_parameters=True)
    ep = detect_api_endpoint(ORDERS, _line_of(ORDERS, "IActionResult Search("), config=config)

    assert ep is not None
    assert {p.name: p.required for p in ep.parameters} == {"term": True, "page": True, "size": False}


def test_non_action_lines_return_none():
    assert detect_api_endpoint(ORDERS, _line_of(ORDERS, "NotAnAction")) is None
    assert detect_api_endpoint(ORDERS, _line_of(ORDERS, "[HttpPost]")) is None
    assert detect_api_endpoint(ORDERS, 0) is None
    assert detect_api_endpoint(ORDERS, 10_000) is None


def test_method_outside_controller_returns_none():
    src = textwrap.dedent(
        """
        public class OrderService
        {
            [HttpGet]
            public IActionResult Get() => Ok();
        }
        """
    )
    assert detect_api_endpoint(src, _line_of(src, "IActionResult Get")) is None


def test_complex_post_parameter_without_base_route_is_body():
    src = textwrap.dedent(
        """
        public class UploadsController : ControllerBase
        {
            [HttpPost]
            public IActionResult Upload(UploadRequest request) => Ok();
        }
        """
    )
    ep = detect_api_endpoint(src, _line_of(src, "Upload("))

    assert ep is not None
    assert ep.route_path == "/"
    assert _params(ep) == [("request", "UploadRequest", ParameterSource.BODY)]


def test_action_placeholder_detects_any_verb():
    src = textwrap.dedent(
        """
        [Route("api/[controller]/[action]")]
        public class ToolsController : Controller
        {
            public IActionResult RebuildIndexAsync(string scope) => Ok();
        }
        """
    )
    ep = detect_api_endpoint(src, _line_of(src, "RebuildIndexAsync"))

    assert ep is not None
    assert ep.http_verb == "ANY"
    assert ep.route_path == "/api/tools/rebuildindex"
    assert _params(ep) == [("scope", "string", ParameterSource.QUERY)]


def test_generic_and_attribute_arguments_do_not_split():
    parts = split_parameters(
        '[FromQuery(Name = "a,b")] string ab, Dictionary<string, int> counts, int[] ids, (int x, int y) pair'
    )
    assert parts == [
        '[FromQuery(Name = "a,b")] string ab',
        "Dictionary<string, int> counts",
        "int[] ids",
        "(int x, int y) pair",
    ]

    p = parse_formal_parameter("Dictionary<string, int> counts")
    assert p is not None
    assert p.declared_type == "Dictionary<string, int>"
    assert p.name == "counts"


def test_signature_window_is_bounded():
    lines = ["public IActionResult Get("] + ["    int a,"] * 20 + ["    int z)"]
    sig = capture_signature(lines, 0, lines[0].index("("), window=3)
    assert "int z" not in sig
    assert sig.count("int a") == 3


def test_resolver_supplies_full_url(tmp_path: Path):
    project = tmp_path / "Shop.Api"
    controllers = project / "Controllers"
    controllers.mkdir(parents=True)
    (project / "Shop.Api.csproj").write_text("<Project />", encoding="utf-8")
    (project / "Properties").mkdir()
    (project / "Properties" / "launchSettings.json").write_text(
        json.dumps({"profiles": {"Shop.Api": {"commandName": "Project", "applicationUrl": "http://0.0.0.0:5080"}}}),
        encoding="utf-8",
    )
    source = controllers / "OrdersController.cs"
    source.write_text(ORDERS, encoding="utf-8")

    ep = detect_api_endpoint_in_file(source, _line_of(ORDERS, "GetAsync("), resolver=ProjectBaseUrlResolver())

    assert ep is not None
    assert ep.project_descriptor_path == str(project / "Shop.Api.csproj")
    assert ep.full_url == "http://localhost:5080/api/orders/{id:int}"
    assert ep.request_url == ep.full_url


def test_without_resolver_full_url_is_unset(tmp_path: Path):
    (tmp_path / "Api.csproj").write_text("<Project />", encoding="utf-8")
    source = tmp_path / "OrdersController.cs"
    source.write_text(ORDERS, encoding="utf-8")

    ep = detect_api_endpoint_in_file(source, _line_of(ORDERS, "IActionResult Create("))

    assert ep is not None
    assert ep.project_descriptor_path == str(tmp_path / "Api.csproj")
    assert ep.full_url is None
    assert ep.request_url == "/api/orders"


def test_unreadable_file_yields_none(tmp_path: Path):
    folder = tmp_path / "OrdersController.cs"
    folder.mkdir()
    assert detect_api_endpoint_in_file(folder, 1) is None
