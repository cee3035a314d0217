from tattoo_crm.domain.cart.pricing import calculate_price_and_duration, get_addon_total


def variant(type_, name, price=0, metadata=None):
    return {"type": type_, "name": name, "price_modifier": price, "metadata": metadata or {}}


SIZE_VARIANTS = [variant("size", "5cm", 1500), variant("size", "Z", 2000)]


def test_no_selection_uses_base_price():
    assert calculate_price_and_duration(2000, 90, [], {}) == (2000, 60)
    assert calculate_price_and_duration(2000, 90, [], None) == (2000, 60)


def test_fixed_color_price_replaces_size_price():
    variants = SIZE_VARIANTS + [variant("color", "黑白", 3000)]
    price, _ = calculate_price_and_duration(100, 60, variants, {"size": "5cm", "color": "黑白"})
    assert price == 3000


def test_small_color_modifier_is_a_surcharge():
    variants = SIZE_VARIANTS + [variant("color", "紅", 500)]
    price, _ = calculate_price_and_duration(100, 60, variants, {"size": "5cm", "color": "紅"})
    assert price == 2000


def test_color_size_price_table():
    variants = SIZE_VARIANTS + [variant("color", "紅", 0, {"sizePrices": {"5cm": 2600}})]
    price, _ = calculate_price_and_duration(100, 60, variants, {"size": "5cm", "color": "紅"})
    assert price == 2600
    price, _ = calculate_price_and_duration(100, 60, variants, {"size": "Z", "color": "紅"})
    assert price == 2000


def test_color_price_difference_scheme():
    meta = {"colorPriceDiff": 1000, "excludeSizes": ["Z"], "zColorPrice": 1200}
    variants = SIZE_VARIANTS + [
        variant("color", "彩色", 0, meta),
        variant("color", "黑白", 0),
        variant("color", "紅", 0),
    ]
    assert calculate_price_and_duration(0, 60, variants, {"size": "5cm", "color": "彩色"})[0] == 2500
    assert calculate_price_and_duration(0, 60, variants, {"size": "Z", "color": "彩色"})[0] == 1200
    assert calculate_price_and_duration(0, 60, variants, {"size": "5cm", "color": "黑白"})[0] == 1500
    assert calculate_price_and_duration(0, 60, variants, {"size": "5cm", "color": "紅"})[0] == 0


def test_unknown_size_falls_back_to_base_price():
    price, _ = calculate_price_and_duration(1800, 60, SIZE_VARIANTS, {"size": "99cm"})
    assert price == 1800


def test_position_addon_and_style_are_added():
    variants = SIZE_VARIANTS + [variant("position", "手臂", 200), variant("style", "寫實", 100)]
    selected = {"size": "5cm", "position": "手臂", "custom_addon": 300, "style": "寫實", "design_fee": 5000}
    price, duration = calculate_price_and_duration(0, 60, variants, selected)
    assert price == 2100
    assert duration == 60


def test_addon_total():
    assert get_addon_total({"design_fee": 1000, "custom_addon": "500"}) == 1500
    assert get_addon_total({"design_fee": 99.5}) == 100
    assert get_addon_total({"design_fee": -5, "custom_addon": "abc"}) == 0
    assert get_addon_total({"design_fee": True}) == 0
    assert get_addon_total("not a dict") == 0
