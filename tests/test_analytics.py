def test_boss_reads_analytics(client, seed):
    response = client.get("/admin/analytics?dateRange=7d", headers=seed.boss_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["dateRange"] == "7d"
    for key in ("revenue", "members", "appointments", "artists"):
        assert key in body


def test_analytics_rejects_unknown_range(client, seed):
    response = client.get("/admin/analytics?dateRange=2w", headers=seed.boss_headers)
    assert response.status_code == 422


def test_artist_cannot_read_analytics(client, seed):
    response = client.get("/admin/analytics", headers=seed.artist_headers)
    assert response.status_code == 403
