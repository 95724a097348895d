import os

import uvicorn

from llm_gateway import __main__ as entry


def test_main_loads_env_file_without_overriding_process_values(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text(
        'OPENAI_API_KEY="sk-file"\n'
        "export GATEWAY_PORT=9100\n"
        "LOG_LEVEL=debug\n"
    )
    environ = {
        "GATEWAY_ENV_FILE": str(env_file),
        "GATEWAY_PROVIDERS_FILE": str(tmp_path / "providers.json"),
        "LOG_LEVEL": "warning",
    }
    monkeypatch.setattr(os, "environ", environ)
    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))

    entry.main()

    assert environ["OPENAI_API_KEY"] == "sk-file"
    assert environ["LOG_LEVEL"] == "warning"
    (app, kwargs), = calls
    assert app.state.gateway.config.port == 9100
    assert kwargs == {"host": "localhost", "port": 9100, "log_level": "warning"}
