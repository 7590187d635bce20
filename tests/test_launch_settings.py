import json

from apinav.project.launch_settings import (
    choose_application_url,
    find_project_profile,
    normalize_base_url,
    read_base_url,
)


def _settings(*profiles: dict) -> str:
    return json.dumps({"profiles": {f"p{i}": p for i, p in enumerate(profiles)}})


def test_wildcard_host_prefers_http():
    text = _settings({"commandName": "Project", "applicationUrl": "http://0.0.0.0:5000;https://0.0.0.0:5001"})
    assert read_base_url(text) == "http://localhost:5000"


def test_https_only_and_trailing_slash():
    text = _settings({"commandName": "Project", "applicationUrl": "https://localhost:7001/"})
    assert read_base_url(text) == "https://localhost:7001"


def test_http_preferred_even_when_listed_second():
    assert choose_application_url("https://localhost:7001; http://localhost:5001") == "http://localhost:5001"
    assert choose_application_url("ftp://x") is None


def test_byte_order_mark_is_ignored():
    text = "\ufeff" + _settings({"commandName": "Project", "applicationUrl": "http://localhost:5000"})
    assert read_base_url(text) == "http://localhost:5000"


def test_first_project_profile_wins():
    text = _settings(
        {"commandName": "IISExpress", "applicationUrl": "http://localhost:1111"},
        {"commandName": "Project", "applicationUrl": "http://localhost:2222"},
        {"commandName": "Project", "applicationUrl": "http://localhost:3333"},
    )
    assert read_base_url(text) == "http://localhost:2222"
    assert find_project_profile(json.loads(text))["applicationUrl"] == "http://localhost:2222"


def test_hosts_other_than_wildcards_are_kept():
    assert normalize_base_url("http://*:5000") == "http://localhost:5000"
    assert normalize_base_url("http://+:5000") == "http://localhost:5000"
    assert normalize_base_url("http://[::]:5000") == "http://localhost:5000"
    assert normalize_base_url("http://192.168.1.10:8080") == "http://192.168.1.10:8080"
    assert normalize_base_url("http://api.internal:8080/") == "http://api.internal:8080"
    assert normalize_base_url("http://localhost") == "http://localhost"


def test_unusable_documents_give_none():
    assert read_base_url("{ not json") is None
    assert read_base_url("[]") is None
    assert read_base_url(_settings({"commandName": "IISExpress", "applicationUrl": "http://localhost:1"})) is None
    assert read_base_url(_settings({"commandName": "Project"})) is None
    assert read_base_url(_settings({"commandName": "Project", "applicationUrl": "  "})) is None
    assert read_base_url(_settings({"commandName": "Project", "applicationUrl": "localhost:5000"})) is None
