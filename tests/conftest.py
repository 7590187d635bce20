import json
import textwrap
from pathlib import Path

import pytest

ORDERS_CONTROLLER = textwrap.dedent(
    """
    using Microsoft.AspNetCore.Mvc;

    namespace Shop.Api.Controllers;

    [ApiController]
    [Route("api/[controller]")]
    public class OrdersController : ControllerBase
    {
        [HttpGet]
        public IActionResult List() => Ok();

        [HttpGet("{id}")]
        public IActionResult Get(int id) => Ok();

        [HttpPost]
        public IActionResult Create([FromBody] Order order) => Ok();
    }
    """
)

CUSTOMERS_CONTROLLER = textwrap.dedent(
    """
    [Route("api/v{version:apiversion}/customers")]
    public class CustomersController : ControllerBase
    {
        [HttpDelete("{id}")]
        public IActionResult Remove(int id) => Ok();
    }
    """
)

# carries route attributes but is not named like a controller
ORDER_SERVICE = textwrap.dedent(
    """
    public class OrderService
    {
        [HttpGet("hidden")]
        public IActionResult Hidden() => Ok();
    }
    """
)


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


@pytest.fixture
def sample_workspace(tmp_path: Path) -> Path:
    """One project with two controllers, a service, and build output to skip."""
    ws = tmp_path / "ws"
    api = ws / "Shop.Api"
    _write(api / "Shop.Api.csproj", "<Project Sdk=\"Microsoft.NET.Sdk.Web\" />")
    _write(
        api / "Properties" / "launchSettings.json",
        json.dumps(
            {
                "profiles": {
                    "Shop.Api": {
                        "commandName": "Project",
                        "applicationUrl": "https://localhost:7001;http://localhost:5001",
                    }
                }
            }
        ),
    )
    _write(api / "Controllers" / "OrdersController.cs", ORDERS_CONTROLLER)
    _write(api / "Controllers" / "CustomersController.cs", CUSTOMERS_CONTROLLER)
    _write(api / "Services" / "OrderService.cs", ORDER_SERVICE)
    _write(api / "bin" / "Debug" / "StaleController.cs", ORDERS_CONTROLLER.replace("Orders", "Stale"))
    _write(api / "obj" / "GeneratedController.cs", ORDERS_CONTROLLER.replace("Orders", "Generated"))
    return ws.resolve()
