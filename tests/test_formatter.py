from simplecite.formatter import (
    CitationFormatter,
    format_accessed_date,
    format_published_date,
    needs_manual_input,
)
from simplecite.models import CitationStyle, Metadata, MetadataSource


EXAMPLE = Metadata(
    title="Example",
    site="Example.com",
    year="2021",
    url="https://example.com/a",
    accessed="2024-05-01",
    author="Jane Doe",
)


def test_apa7_citation_text_and_html():
    result = CitationFormatter().format(EXAMPLE, "apa7")

    assert result.text.startswith(
        "Doe, J. (2021). Example. Example.com. Retrieved May 1, 2024 from https://example.com/a."
    )
    assert "<i>Example</i>." in result.html
    assert '<a href="https://example.com/a" target="_blank" rel="noreferrer">' in result.html


def test_ieee_citation_text():
    result = CitationFormatter().format(EXAMPLE, CitationStyle.IEEE)

    assert result.text.startswith(
        'J. Doe, "Example," Example.com, 2021. [Online]. Available: https://example.com/a. '
        "Accessed: May 1, 2024."
    )
    assert "&ldquo;Example,&rdquo;" in result.html


def test_mla9_citation_with_many_authors():
    meta = Metadata(
        title="Example",
        author="Jane Doe; John Smith; Ann Lee",
        site="Example.com",
        publisher="Example Media",
        year="2021-03-04",
        url="https://example.com/a",
        accessed="2024-05-01",
    )
    result = CitationFormatter().format(meta, "mla9")

    assert result.text == (
        'Doe, Jane, et al. "Example." Example.com, Example Media, March 4, 2021, '
        "https://example.com/a. Accessed May 1, 2024."
    )
    assert "<i>Example.com</i>," in result.html


def test_chicago17_citation():
    meta = Metadata(
        title="Example",
        author="Jane Doe and John Smith",
        site="Example.com",
        publisher="Example Media",
        year="2021",
        url="https://example.com/a",
        accessed="2024-05-01",
    )
    result = CitationFormatter().format(meta, "chicago17")

    assert result.text == (
        'Doe, Jane and John Smith, "Example," Example.com. 2021. Example Media, '
        "https://example.com/a Accessed May 1, 2024."
    )


def test_apa7_without_year_or_accessed_date():
    meta = Metadata(title="Example", url="https://example.com/a", publisher="Example Media")
    result = CitationFormatter().format(meta, "apa7")

    assert result.text == "(n.d.). Example. Example Media. https://example.com/a"


def test_display_title_fallback_chain():
    formatter = CitationFormatter()

    assert formatter.format(Metadata(site="Example Site"), "ieee").text.startswith('"Example Site,"')
    assert formatter.format(Metadata(url="https://example.com"), "mla9").text.startswith(
        '"https://example.com."'
    )
    untitled = formatter.format(Metadata(), "apa7")
    assert untitled.text == "(n.d.). Untitled work."
    assert needs_manual_input(Metadata())
    assert not needs_manual_input(Metadata(url="https://example.com"))


def test_html_output_escapes_markup():
    meta = Metadata(title="Fish & <Chips>", author="O'Brien, Pat", url="https://example.com/?a=1&b=2")
    result = CitationFormatter().format(meta, "apa7")

    assert "<i>Fish &amp; &lt;Chips&gt;</i>." in result.html
    assert 'href="https://example.com/?a=1&amp;b=2"' in result.html
    assert "O&#x27;Brien, P." in result.html
    assert "Fish & <Chips>." in result.text


def test_unknown_style_defaults_to_apa():
    assert CitationFormatter().format(EXAMPLE, "harvard") == CitationFormatter().format(EXAMPLE, "apa7")


def test_date_helpers():
    assert format_accessed_date("2024-05-01") == "May 1, 2024"
    assert format_accessed_date("yesterday") == "yesterday"
    assert format_published_date("2021") == "2021"
    assert format_published_date("2021-12-25T08:00:00Z") == "December 25, 2021"
    assert format_published_date("March 4, 2021") == "March 4, 2021"
    assert format_published_date("Spring 2021") == "Spring 2021"
    assert format_published_date("") == ""


def test_dates_with_compact_utc_offsets():
    assert format_published_date("2021-03-04T12:00:00-0500") == "March 4, 2021"
    assert format_published_date("2021-03-04T23:30:00.000+0530") == "March 4, 2021"
    assert format_accessed_date("2024-05-01T09:15:00+02:00") == "May 1, 2024"


def test_formatting_preserves_serialized_meta_round_trip():
    meta = Metadata(
        title="Example",
        author="Jane Doe",
        url="https://example.com/a",
        source=MetadataSource.RESOLVED,
    )
    CitationFormatter().format(meta, "mla9")

    assert Metadata.from_json(meta.to_json()) == meta
