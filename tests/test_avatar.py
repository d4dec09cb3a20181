from safespace.utils.avatar import DEFAULT_COLOR, PALETTE, email_initial, string_to_color


def test_color_is_stable():
    assert string_to_color("ana@example.com") == string_to_color("ana@example.com")
    assert string_to_color("ana@example.com") in PALETTE


def test_known_colors():
    assert string_to_color("a") == "#fb8c00"
    assert string_to_color("ab") == "#8e24aa"


def test_blank_seed_uses_default():
    assert string_to_color("") == DEFAULT_COLOR
    assert string_to_color("   ") == DEFAULT_COLOR
    assert string_to_color(None) == DEFAULT_COLOR


def test_long_seed_stays_in_palette():
    assert string_to_color("x" * 500) in PALETTE


def test_email_initial():
    assert email_initial("ana@example.com") == "A"
    assert email_initial("  bob@example.com") == "B"
    assert email_initial("") == "G"
    assert email_initial(None) == "G"
