from unittest.mock import MagicMock, patch

import pytest

from api import server
from staffdb.bootstrap import BootstrapSequencer, ReadinessState


def test_serve_starts_uvicorn_on_configured_port(handle):
    sequencer = BootstrapSequencer(
        environ={"MONGO_URI": "mongodb://localhost/company", "PORT": "8123", "HOST": "0.0.0.0"},
        connector=lambda settings: handle,
    )

    with patch("api.server.uvicorn.run") as run:
        sequencer.run_or_exit(lambda h: server.serve(sequencer, h))

    run.assert_called_once()
    (app,), kwargs = run.call_args
    assert app.state.handle is handle
    assert kwargs == {"host": "0.0.0.0", "port": 8123, "log_level": "info"}
    assert sequencer.state is ReadinessState.READY
    assert handle.closed


def test_main_exits_without_serving_when_uri_missing(monkeypatch):
    monkeypatch.delenv("MONGO_URI", raising=False)
    monkeypatch.setattr("staffdb.config.load_dotenv", MagicMock())

    with patch("api.server.uvicorn.run") as run:
        with pytest.raises(SystemExit) as exc_info:
            server.main()

    assert exc_info.value.code == 1
    run.assert_not_called()
