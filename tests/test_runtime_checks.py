from inspectgrid.runtime_checks import (
    _is_missing_browser_error,
    _normalize_space,
    escape_css_attribute_value,
    is_css_safe_id,
    looks_like_css_selector,
    parse_int_attribute,
)


def test_is_missing_browser_error_matches_common_messages() -> None:
    errors = [
        RuntimeError("Executable doesn't exist at /path/to/chromium/chrome"),
        RuntimeError("Please run the following command to download new browsers: playwright install"),
        RuntimeError("Failed to launch chromium because executable does not exist"),
    ]

    for error in errors:
        assert _is_missing_browser_error(error)


def test_is_missing_browser_error_ignores_unrelated_errors() -> None:
    assert not _is_missing_browser_error(RuntimeError("net::ERR_NAME_NOT_RESOLVED"))


def test_css_safe_id_detection() -> None:
    assert is_css_safe_id("ordersGrid")
    assert is_css_safe_id("-heroTable")
    assert not is_css_safe_id("123-grid")
    assert not is_css_safe_id("has space")


def test_escape_css_attribute_value() -> None:
    assert escape_css_attribute_value('a"b\\c') == 'a\\"b\\\\c'


def test_looks_like_css_selector() -> None:
    assert looks_like_css_selector("#orders")
    assert looks_like_css_selector(" .ag-theme-alpine")
    assert looks_like_css_selector('[data-testid="orders"]')
    assert not looks_like_css_selector("orders")


def test_parse_int_attribute() -> None:
    assert parse_int_attribute(" 12 ") == 12
    assert parse_int_attribute("-1") == -1
    assert parse_int_attribute("1.5") is None
    assert parse_int_attribute("") is None
    assert parse_int_attribute(None) is None


def test_normalize_space() -> None:
    assert _normalize_space("  Order \n  1 ") == "Order 1"
    assert _normalize_space(None) == ""
