import os

from stationery_server import cli


def test_http_mode_passes_bind_options(monkeypatch):
    calls = []
    monkeypatch.setattr(
        "stationery_server.http_server.run_http_server",
        lambda **kwargs: calls.append(kwargs),
    )

    cli.main(["--mode", "http", "--port", "9000", "--reload"])

    assert calls == [{"host": "0.0.0.0", "port": 9000, "reload": True}]


def test_backend_and_log_level_go_to_environment(monkeypatch):
    monkeypatch.setenv("STATIONERY_BACKEND_URL", "http://backend.test")
    monkeypatch.setenv("STATIONERY_LOG_LEVEL", "INFO")
    monkeypatch.setattr("stationery_server.http_server.run_http_server", lambda **kwargs: None)

    cli.main(["--mode", "http", "--backend-url", "http://localhost:5000", "--log-level", "debug"])

    assert os.environ["STATIONERY_BACKEND_URL"] == "http://localhost:5000"
    assert os.environ["STATIONERY_LOG_LEVEL"] == "DEBUG"


def test_defaults_to_stdio():
    args = cli.build_parser().parse_args([])
    assert args.mode == "stdio"
    assert args.backend_url is None
