from triplist.config import _int_env, allowed_origins, clamp_page_size


def test_clamp_page_size_bounds():
    assert clamp_page_size(0) == 1
    assert clamp_page_size(-4) == 1
    assert clamp_page_size(12, max_page_size=10) == 10
    assert clamp_page_size(7, max_page_size=10) == 7


def test_allowed_origins_from_env(monkeypatch):
    monkeypatch.setenv("TRIP_LIST_ALLOWED_ORIGINS", "http://localhost:5173, ,http://app.test")
    assert allowed_origins() == ["http://localhost:5173", "http://app.test"]

    monkeypatch.setenv("TRIP_LIST_ALLOWED_ORIGINS", " , ")
    assert allowed_origins() == ["*"]


def test_malformed_integer_env_falls_back(monkeypatch):
    monkeypatch.setenv("TRIP_LIST_MAX_PAGE_SIZE", "lots")
    assert _int_env("TRIP_LIST_MAX_PAGE_SIZE", 50) == 50

    monkeypatch.setenv("TRIP_LIST_MAX_PAGE_SIZE", "25")
    assert _int_env("TRIP_LIST_MAX_PAGE_SIZE", 50) == 25
