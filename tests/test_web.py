import io
import json
from datetime import datetime, timedelta, timezone
from typing import List

import pytest
from PIL import Image

from spectre.sweep.model import Sample
from spectre_web import create_app

T0 = datetime(2021, 12, 1, 10, 0, 0, tzinfo=timezone.utc)


def _payload(times: int = 3, freqs: int = 4) -> List[dict]:
    out = []
    for t in range(times):
        for j in range(freqs):
            out.append(
                Sample.reading(
                    identifier="node-1",
                    source="hackrf",
                    freq_low=400_000_000 + j * 12_500,
                    freq_high=400_000_000 + (j + 1) * 12_500,
                    db=-100.0 + 10 * j + t,
                    sample_count=10,
                    timestamp=T0 + timedelta(seconds=t),
                ).to_dict()
            )
    return out


@pytest.fixture()
def app(tmp_path):
    app = create_app(str(tmp_path / "spectre.db"), token="", render_timeout_s=10)
    yield app
    app.extensions["spectre_ingest"].close()


@pytest.fixture()
def client(app):
    return app.test_client()


def _collect(app, client, payload, **kwargs):
    resp = client.post("/spectre/v1/collect", json=payload, **kwargs)
    app.extensions["spectre_ingest"].drain()
    return resp


def test_collect_then_render_png(app, client) -> None:
    resp = _collect(app, client, _payload())
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "success", "sampleCount": 12}

    resp = client.get("/spectre/v1/render?imageType=png&addGrid=false&sdr=hackrf")
    assert resp.status_code == 200
    assert resp.mimetype == "image/png"
    assert resp.data.startswith(b"\x89PNG")
    assert resp.headers["X-Spectre-Image-Width"] == "4"
    assert resp.headers["X-Spectre-Image-Height"] == "3"
    assert resp.headers["X-Spectre-Low-Freq"] == "400000000"
    assert resp.headers["X-Spectre-High-Freq"] == "400050000"
    assert resp.headers["X-Spectre-Start-Time"] == str(int(T0.timestamp() * 1000))


def test_render_defaults_to_jpeg_with_requested_size(app, client) -> None:
    _collect(app, client, _payload())
    resp = client.get("/spectre/v1/render?imgWidth=2&imgHeight=1&identifier=node-%25")
    assert resp.status_code == 200
    assert resp.mimetype == "image/jpeg"
    assert resp.headers["X-Spectre-Image-Width"] == "2"
    assert resp.headers["X-Spectre-Image-Height"] == "1"


def test_render_time_window_in_epoch_ms(app, client) -> None:
    _collect(app, client, _payload())
    start_ms = int((T0 + timedelta(seconds=1)).timestamp() * 1000)
    resp = client.get(f"/spectre/v1/render?startTime={start_ms}&addGrid=0")
    assert resp.status_code == 200
    assert resp.headers["X-Spectre-Image-Height"] == "2"


def test_render_without_data_is_404(client) -> None:
    resp = client.get("/spectre/v1/render")
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "no data"


@pytest.mark.parametrize(
    "query",
    [
        "imgWidth=abc",
        "imgHeight=-1",
        "startFreq=1e6",
        "startFreq=-1",
        "startTime=-5",
        "endTime=999999999999999999",
        "endFreq=99999999999999999999",
    ],
)
def test_render_rejects_bad_parameters(client, query) -> None:
    resp = client.get(f"/spectre/v1/render?{query}")
    assert resp.status_code == 400


def test_collect_rejects_malformed_bodies(client) -> None:
    assert client.post("/spectre/v1/collect", data="not json", content_type="application/json").status_code == 400
    assert client.post("/spectre/v1/collect", json={"FreqCenter": 1}).status_code == 400
    assert client.post("/spectre/v1/collect", json=[{"FreqCenter": 1}]).status_code == 400
    bad = _payload(1, 1)
    bad[0]["SampleCount"] = 0
    assert client.post("/spectre/v1/collect", json=bad).status_code == 400


def test_collect_limits_request_size(tmp_path) -> None:
    app = create_app(str(tmp_path / "spectre.db"), token="", max_collect_samples=2)
    try:
        resp = app.test_client().post("/spectre/v1/collect", json=_payload(1, 3))
        assert resp.status_code == 400
    finally:
        app.extensions["spectre_ingest"].close()


def test_collect_requires_token_when_configured(tmp_path) -> None:
    app = create_app(str(tmp_path / "spectre.db"), token="secret")
    client = app.test_client()
    try:
        assert client.post("/spectre/v1/collect", json=_payload(1, 1)).status_code == 401
        resp = client.post(
            "/spectre/v1/collect",
            json=_payload(1, 1),
            headers={"Authorization": "Bearer secret"},
        )
        assert resp.status_code == 200
    finally:
        app.extensions["spectre_ingest"].close()


def test_collect_full_queue_is_503(tmp_path) -> None:
    app = create_app(str(tmp_path / "spectre.db"), token="", ingest_queue_size=1, start_writer=False)
    client = app.test_client()
    writer = app.extensions["spectre_ingest"]
    try:
        assert client.post("/spectre/v1/collect", json=_payload(1, 1)).status_code == 200
        resp = client.post("/spectre/v1/collect", json=_payload(1, 1))
        assert resp.status_code == 503
        writer.start()
        writer.drain()
        assert writer.sink.counts.success == 1
        assert client.post("/spectre/v1/collect", json=_payload(1, 1)).status_code == 200
    finally:
        writer.close()


def test_collect_rejects_non_finite_db_and_render_keeps_its_range(app, client) -> None:
    bad = _payload(1, 1)
    bad[0].update(DBHigh=float("nan"), DBLow=float("nan"), DBAvg=float("nan"))
    body = json.dumps(_payload() + bad)
    resp = client.post("/spectre/v1/collect", data=body, content_type="application/json")
    assert resp.status_code == 400

    _collect(app, client, _payload())
    resp = client.get("/spectre/v1/render?imageType=png&addGrid=false")
    assert resp.status_code == 200
    image = Image.open(io.BytesIO(resp.data)).convert("RGB")
    assert len(set(image.getdata())) > 2
