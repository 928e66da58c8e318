import threading
import time
from concurrent.futures import ThreadPoolExecutor
from types import SimpleNamespace

import pytest

from fridgenote.core import deps
from fridgenote.core.config import settings
from fridgenote.core.errors import ConfigurationError


class SlowClient:
    created = 0
    _lock = threading.Lock()

    def __init__(self, key):
        # 생성 중에 다른 스레드가 끼어들 틈을 만든다
        time.sleep(0.05)
        with SlowClient._lock:
            SlowClient.created += 1
        self.key = key


@pytest.fixture
def fake_app():
    return SimpleNamespace(state=SimpleNamespace(mfds_client=None))


def test_concurrent_first_use_creates_one_client(fake_app, monkeypatch):
    SlowClient.created = 0
    monkeypatch.setattr(deps, "MfdsClient", SlowClient)
    monkeypatch.setattr(settings, "MFDS_API_KEY", "test-key")

    with ThreadPoolExecutor(max_workers=8) as pool:
        clients = list(pool.map(lambda _: deps.mfds_client_for(fake_app), range(8)))

    assert SlowClient.created == 1
    assert all(c is clients[0] for c in clients)
    assert fake_app.state.mfds_client is clients[0]


def test_missing_key_is_configuration_error(fake_app, monkeypatch):
    monkeypatch.setattr(settings, "MFDS_API_KEY", None)
    monkeypatch.setattr(settings, "FOODSAFETY_API_KEY", "  ")

    with pytest.raises(ConfigurationError) as ei:
        deps.mfds_client_for(fake_app)
    assert "MFDS_API_KEY" in ei.value.message
    assert fake_app.state.mfds_client is None


def test_foodsafety_key_is_fallback(fake_app, monkeypatch):
    monkeypatch.setattr(deps, "MfdsClient", SlowClient)
    monkeypatch.setattr(settings, "MFDS_API_KEY", None)
    monkeypatch.setattr(settings, "FOODSAFETY_API_KEY", "legacy-key")

    assert deps.mfds_client_for(fake_app).key == "legacy-key"
