from tattoo_crm.domain.site_config.schemas import DEFAULT_HOME_HERO


def hero_payload(**overrides):
    payload = DEFAULT_HOME_HERO.model_dump()
    payload.update(overrides)
    return payload


def test_public_home_hero_defaults(client):
    response = client.get("/public/site-config/home-hero")
    assert response.status_code == 200
    assert response.json()["badgeText"] == DEFAULT_HOME_HERO.badgeText
    assert len(response.json()["stats"]) == 4


def test_boss_updates_home_hero(client, seed):
    response = client.put(
        "/admin/site-config/home-hero",
        json=hero_payload(badgeText="Walk-ins welcome"),
        headers=seed.boss_headers,
    )
    assert response.status_code == 200

    public = client.get("/public/site-config/home-hero")
    assert public.json()["badgeText"] == "Walk-ins welcome"

    audit = client.get("/admin/audit-logs?action=SITE_CONFIG_UPDATE", headers=seed.boss_headers)
    assert audit.status_code == 200
    assert "home.hero" in audit.text


def test_home_hero_requires_four_stats(client, seed):
    payload = hero_payload()
    payload["stats"] = payload["stats"][:3]
    response = client.put("/admin/site-config/home-hero", json=payload, headers=seed.boss_headers)
    assert response.status_code == 422


def test_artist_cannot_update_home_hero(client, seed):
    response = client.put("/admin/site-config/home-hero", json=hero_payload(), headers=seed.artist_headers)
    assert response.status_code == 403
