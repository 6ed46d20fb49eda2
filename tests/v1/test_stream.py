"""Tests for manifest and segment delivery endpoints."""

from __future__ import annotations

from urllib.parse import urlsplit

import pytest

from tests.conftest import PRICE_WEI, end_time_after, record_purchase


@pytest.fixture()
def rental_id(client, chain, clock, renter, catalog_item) -> str:
    tx_hash = record_purchase(
        chain,
        renter=renter.address,
        catalog_item_id=catalog_item.id,
        paid_amount=PRICE_WEI,
        rental_end_time=end_time_after(clock, days=1),
    )
    response = client.post(
        "/api/v1/rentals/verify", json={"txHash": tx_hash, "wallet": renter.address}
    )
    assert response.status_code == 200
    return response.json()["id"]


def test_playlist_is_hls(client, rental_id, renter, chunks):
    response = client.get(
        f"/api/v1/stream/{rental_id}/playlist", params={"wallet": renter.address}
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/vnd.apple.mpegurl")
    lines = response.text.strip().splitlines()
    assert lines[0] == "#EXTM3U"
    assert lines[-1] == "#EXT-X-ENDLIST"
    urls = [line for line in lines if not line.startswith("#")]
    assert len(urls) == len(chunks)
    assert urls[0].startswith(f"http://test/api/v1/stream/segment/{rental_id}/0?wallet=")


def test_manifest_urls_resolve_to_segments(client, rental_id, renter, chunks):
    playlist = client.get(
        f"/api/v1/stream/{rental_id}/playlist", params={"wallet": renter.address}
    ).text
    urls = [line for line in playlist.splitlines() if line and not line.startswith("#")]

    for url, expected in zip(urls, chunks, strict=True):
        parts = urlsplit(url)
        response = client.get(f"{parts.path}?{parts.query}")
        assert response.status_code == 200
        assert response.content == expected
        assert response.headers["content-type"] == "video/MP2T"


def test_segment_by_rental_path(client, rental_id, renter, chunks):
    response = client.get(
        f"/api/v1/stream/{rental_id}/segment/2", params={"wallet": renter.address}
    )

    assert response.status_code == 200
    assert response.content == chunks[2]


def test_other_wallet_is_forbidden(client, rental_id, stranger):
    response = client.get(
        f"/api/v1/stream/{rental_id}/playlist", params={"wallet": stranger.address}
    )

    assert response.status_code == 403
    assert response.json()["detail"]["code"] == "Forbidden"


def test_expired_rental(client, rental_id, renter, clock):
    clock.advance(days=1, seconds=1)

    response = client.get(
        f"/api/v1/stream/{rental_id}/segment/0", params={"wallet": renter.address}
    )

    assert response.status_code == 403
    assert response.json()["detail"]["code"] == "Expired"


def test_unknown_rental(client, renter):
    response = client.get("/api/v1/stream/missing/playlist", params={"wallet": renter.address})

    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "NotFound"


def test_missing_segment(client, rental_id, renter, chunks):
    response = client.get(
        f"/api/v1/stream/{rental_id}/segment/{len(chunks)}", params={"wallet": renter.address}
    )

    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "ChunkNotFound"


def test_wallet_query_is_required(client, rental_id):
    assert client.get(f"/api/v1/stream/{rental_id}/playlist").status_code == 422
