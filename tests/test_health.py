from __future__ import annotations

import meetai.api.routes_health as health


class _Redis:
    def __init__(self, ok: bool) -> None:
        self.ok = ok

    def ping(self):
        if not self.ok:
            raise ConnectionError("down")
        return True


def test_health_reports_components(monkeypatch, client, engine):
    monkeypatch.setattr(health, "get_engine", lambda: engine)
    monkeypatch.setattr(health, "get_redis_bytes", lambda: _Redis(True))
    assert client.get("/health").json() == {"ok": True, "db": "ok", "redis": "ok"}

    monkeypatch.setattr(health, "get_redis_bytes", lambda: _Redis(False))
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["redis"] == "error"
