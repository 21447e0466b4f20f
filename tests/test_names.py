from simplecite.names import (
    decompose_name,
    format_authors_apa,
    format_authors_chicago,
    format_authors_ieee,
    format_authors_mla,
    initials,
    parse_authors,
)


def test_parse_authors_splits_on_all_separators():
    raw = "Jane Doe; John Smith and Ann Lee & Bo Chen AND Cy Twombly"

    assert parse_authors(raw) == ["Jane Doe", "John Smith", "Ann Lee", "Bo Chen", "Cy Twombly"]


def test_parse_authors_keeps_words_containing_and():
    assert parse_authors("Sandra Anderson; ; Rand Paul") == ["Sandra Anderson", "Rand Paul"]
    assert parse_authors("") == []


def test_parse_authors_rejoin_is_idempotent():
    raw = "  Jane   Doe ;John Smith and  Ann Lee "
    first = parse_authors(raw)

    assert parse_authors("; ".join(first)) == first


def test_decompose_name_handles_comma_and_single_token():
    assert decompose_name("Doe, Jane Q.") == ("Jane Q.", "Doe")
    assert decompose_name("Jane Quincy Doe") == ("Jane Quincy", "Doe")
    assert decompose_name("Plato") == ("", "Plato")
    assert decompose_name("   ") == ("", "")


def test_initials():
    assert initials("jane quincy") == "J. Q."
    assert initials("") == ""


def test_apa_author_lists():
    assert format_authors_apa(["Jane Doe"]) == "Doe, J."
    assert format_authors_apa(["Jane Doe", "John Smith"]) == "Doe, J. & Smith, J."
    assert format_authors_apa(["Jane Doe", "John Smith", "Ann Lee"]) == "Doe, J., Smith, J., & Lee, A."
    assert format_authors_apa(["Plato"]) == "Plato"


def test_mla_and_chicago_author_lists():
    two = ["Jane Doe", "John Smith"]
    three = ["Jane Doe", "John Smith", "Ann Lee"]

    assert format_authors_mla(["Jane Doe"]) == "Doe, Jane"
    assert format_authors_mla(two) == "Doe, Jane, and John Smith"
    assert format_authors_mla(three) == "Doe, Jane, et al."
    assert format_authors_chicago(two) == "Doe, Jane and John Smith"
    assert format_authors_chicago(three) == "Doe, Jane, et al."


def test_ieee_author_list_uses_initials_without_inversion():
    assert format_authors_ieee(["Jane Doe", "Smith, John Paul"]) == "J. Doe, J. P. Smith"


def test_formatters_fall_back_to_raw_name_without_last():
    assert format_authors_apa([", Jane"]) == ", Jane"
    assert format_authors_mla([", Jane"]) == ", Jane"
    assert format_authors_ieee([", Jane"]) == ", Jane"
