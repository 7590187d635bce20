import json
import threading
from pathlib import Path

from apinav.project.config_cache import KeyedCache, ProjectBaseUrlResolver
from apinav.repo.project_locator import find_project_descriptor

SETTINGS = json.dumps(
    {"profiles": {"Api": {"commandName": "Project", "applicationUrl": "http://localhost:5000;https://localhost:5001"}}}
)


def _counting_resolver(text: str = SETTINGS):
    reads: list[Path] = []

    def read_text(path: Path) -> str:
        reads.append(path)
        return text

    return ProjectBaseUrlResolver(read_text=read_text), reads


def test_keyed_cache_stores_none():
    calls = []
    cache: KeyedCache[str, None] = KeyedCache("test")

    def compute(key):
        calls.append(key)
        return None

    assert cache.get_or_compute("a", compute) is None
    assert cache.get_or_compute("a", compute) is None
    assert calls == ["a"]
    assert "a" in cache
    assert cache.invalidate("a") is True
    assert cache.invalidate("a") is False
    assert len(cache) == 0


def test_keyed_cache_concurrent_lookups_compute_once():
    calls = []
    cache: KeyedCache[str, int] = KeyedCache("test")

    def compute(key):
        calls.append(key)
        return 42

    threads = [threading.Thread(target=cache.get_or_compute, args=("k", compute)) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert calls == ["k"]


def test_base_url_is_read_once(tmp_path: Path):
    resolver, reads = _counting_resolver()
    project_dir = tmp_path / "Api"

    assert resolver.get_base_url(project_dir) == "http://localhost:5000"
    assert resolver.get_base_url(str(project_dir)) == "http://localhost:5000"

    assert reads == [project_dir / "Properties" / "launchSettings.json"]
    assert resolver.stats()["base_url_cache_size"] == 1


def test_launch_settings_change_forces_reread(tmp_path: Path):
    resolver, reads = _counting_resolver()
    project_dir = tmp_path / "Api"
    resolver.get_base_url(project_dir)

    assert resolver.on_launch_settings_changed(project_dir / "Properties" / "launchSettings.json") is True
    resolver.get_base_url(project_dir)
    assert len(reads) == 2

    assert resolver.on_launch_settings_deleted(project_dir / "Properties" / "launchSettings.json") is True
    assert resolver.on_launch_settings_deleted(project_dir / "Properties" / "launchSettings.json") is False


def test_missing_launch_settings_is_cached_as_none(tmp_path: Path):
    calls = []

    def read_text(path: Path) -> str:
        calls.append(path)
        raise FileNotFoundError(path)

    resolver = ProjectBaseUrlResolver(read_text=read_text)
    assert resolver.get_base_url(tmp_path) is None
    assert resolver.get_base_url(tmp_path) is None
    assert len(calls) == 1


def test_descriptor_lookup_is_cached():
    calls = []
    descriptor = Path("/work/Api/Api.csproj")

    def locator(source_file: str):
        calls.append(source_file)
        return descriptor

    resolver = ProjectBaseUrlResolver(read_text=lambda p: SETTINGS, locator=locator)
    source = "/work/Api/Controllers/OrdersController.cs"

    assert resolver.get_project_descriptor(source) == descriptor
    assert resolver.get_project_directory(source) == descriptor.parent
    assert resolver.get_base_url_for_file(source) == "http://localhost:5000"
    assert calls == [source]

    resolver.on_project_file_changed(descriptor)
    resolver.get_project_descriptor(source)
    assert calls == [source, source]


def test_build_full_route_url():
    resolver = ProjectBaseUrlResolver(read_text=lambda p: SETTINGS, locator=lambda f: None)
    assert resolver.build_full_route_url("/work/Api/Api.csproj", "/api/orders") == "http://localhost:5000/api/orders"
    assert resolver.build_full_route_url(None, "/api/orders") == "/api/orders"

    no_url = ProjectBaseUrlResolver(read_text=lambda p: "{}", locator=lambda f: None)
    assert no_url.build_full_route_url("/work/Api/Api.csproj", "/api/orders") == "/api/orders"


def test_clear_all_empties_both_layers():
    resolver = ProjectBaseUrlResolver(read_text=lambda p: SETTINGS, locator=lambda f: Path("/w/A/A.csproj"))
    resolver.get_base_url_for_file("/w/A/X.cs")
    assert resolver.stats() == {"project_dir_cache_size": 1, "base_url_cache_size": 1}

    resolver.clear_all()
    assert resolver.stats() == {"project_dir_cache_size": 0, "base_url_cache_size": 0}


def test_find_project_descriptor_walks_up(tmp_path: Path):
    project = tmp_path / "Shop.Api"
    nested = project / "Features" / "Orders"
    nested.mkdir(parents=True)
    (project / "Shop.Api.csproj").write_text("<Project />", encoding="utf-8")
    (project / "Shop.Api.sln").write_text("", encoding="utf-8")
    source = nested / "OrdersController.cs"
    source.write_text("", encoding="utf-8")

    assert find_project_descriptor(source) == project / "Shop.Api.csproj"


def test_find_project_descriptor_ignores_directories_named_like_projects():
    seen = []

    def list_dir(d: Path):
        seen.append(d)
        return [("Weird.csproj", False)]

    assert find_project_descriptor("/a/b/c/X.cs", list_dir=list_dir) is None
    assert seen[0] == Path("/a/b/c")


def test_find_project_descriptor_is_depth_bounded():
    seen = []

    def list_dir(d: Path):
        seen.append(d)
        return []

    deep = "/" + "/".join(f"d{i}" for i in range(20)) + "/File.cs"
    assert find_project_descriptor(deep, max_depth=10, list_dir=list_dir) is None
    assert len(seen) == 10


def test_find_project_descriptor_stops_on_listing_error():
    seen = []

    def list_dir(d: Path):
        seen.append(d)
        raise PermissionError(d)

    assert find_project_descriptor("/a/b/X.cs", list_dir=list_dir) is None
    assert len(seen) == 1
