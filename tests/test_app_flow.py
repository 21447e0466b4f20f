from datetime import date, timedelta

import pytest

from simplecite.app import CitationApp
from simplecite.models import CitationStyle, Metadata, MetadataSource, Stage
from simplecite.resolver import MetadataResolver
from simplecite.store import get_citation, get_connection, init_db

ARTICLE_HTML = """
<html><head>
<meta property="og:title" content="Resolved Article" />
<meta name="author" content="Jane Doe" />
<meta property="og:site_name" content="Example News" />
<meta property="article:published_time" content="2022-06-01" />
</head></html>
"""


@pytest.fixture()
def conn(settings):
    connection = get_connection(settings.database_path)
    init_db(connection)
    yield connection
    connection.close()


@pytest.fixture()
def build_app(conn, settings, make_fetcher):
    def build(route):
        resolver = MetadataResolver(
            settings=settings, fetcher=make_fetcher(route), today=lambda: date(2024, 5, 1)
        )
        return CitationApp(conn=conn, resolver=resolver)

    return build


@pytest.mark.asyncio
async def test_cite_url_formats_resolved_metadata(conn, build_app):
    app = build_app(lambda url: ARTICLE_HTML)

    draft = await app.cite_url("example.com/a", "mla9")

    assert draft.style == CitationStyle.MLA9
    assert draft.resolution.source == MetadataSource.RESOLVED
    assert draft.citation.text.startswith('Doe, Jane. "Resolved Article."')
    assert draft.offers_ai_redo


@pytest.mark.asyncio
async def test_unknown_style_defaults_to_apa(conn, build_app):
    app = build_app(lambda url: ARTICLE_HTML)

    draft = await app.cite_url("https://example.com/a", "harvard")

    assert draft.style == CitationStyle.APA7


def test_cite_manual_formats_typed_fields(conn, build_app):
    app = build_app(lambda url: None)

    result = app.cite_manual({"title": "  Handmade  ", "site": "Notes"}, CitationStyle.IEEE)

    assert "Handmade" in result.text


def test_save_and_list_newest_first(conn, build_app):
    app = build_app(lambda url: None)

    first = app.save(Metadata(title="First", url="https://a.test"), "apa7")
    second = app.save(Metadata(title="Second", url="https://b.test"), "chicago17")

    records = app.list_citations()
    assert [record.id for record in records] == [second.id, first.id]
    assert records[0].style == CitationStyle.CHICAGO17
    assert "Second" in records[0].text


def test_save_defaults_provenance_to_manual(conn, build_app):
    app = build_app(lambda url: None)

    record = app.save(Metadata(title="Typed in", url="https://a.test"), "apa7")

    stored = get_citation(conn, record.id).metadata()
    assert stored.source == MetadataSource.MANUAL
    assert stored.title == "Typed in"
    assert not record.supports_ai_redo()


def test_save_refuses_blank_record(conn, build_app):
    app = build_app(lambda url: None)

    with pytest.raises(ValueError):
        app.save(Metadata(), "apa7")


def test_save_with_id_updates_in_place(conn, build_app):
    app = build_app(lambda url: None)
    record = app.save(Metadata(title="Draft", url="https://a.test"), "apa7")

    updated = app.save(Metadata(title="Final", url="https://a.test"), "ieee", record_id=record.id)

    assert updated.id == record.id
    assert updated.style == CitationStyle.IEEE
    assert "Final" in updated.text
    assert len(app.list_citations()) == 1


def test_save_with_unknown_id_raises_key_error(conn, build_app):
    app = build_app(lambda url: None)

    with pytest.raises(KeyError):
        app.save(Metadata(title="Ghost"), "apa7", record_id=999)


def test_delete_removes_record(conn, build_app):
    app = build_app(lambda url: None)
    record = app.save(Metadata(title="Temp"), "apa7")

    app.delete(record.id)

    assert app.list_citations() == []
    with pytest.raises(KeyError):
        app.delete(record.id)


def test_corrupt_meta_is_tolerated(conn, build_app):
    app = build_app(lambda url: None)
    record = app.save(Metadata(title="Temp", url="https://a.test"), "apa7")
    conn.execute("UPDATE citations SET meta = ? WHERE id = ?", ("{not json", record.id))
    conn.commit()

    stored = get_citation(conn, record.id)

    assert stored.metadata() is None
    assert not stored.supports_ai_redo()


@pytest.mark.asyncio
async def test_redo_with_ai_refreshes_saved_citation(build_app):
    def route(url):
        if url.startswith("https://reader.test/"):
            return "Readable"
        return '{"title": "Refreshed", "author": "John Smith", "site": "Example"}'

    app = build_app(route)
    saved = app.save(
        Metadata(title="Old", url="https://example.com/a", source=MetadataSource.RESOLVED),
        "apa7",
    )

    record, resolution = await app.redo_with_ai(saved.id)

    assert resolution.stage == Stage.DONE
    assert record.id == saved.id
    assert "Refreshed" in record.text
    assert record.metadata().source == MetadataSource.AI_RESOLVED


@pytest.mark.asyncio
async def test_redo_with_ai_rejects_manual_records(conn, build_app):
    app = build_app(lambda url: None)
    saved = app.save(Metadata(title="Typed", url="https://example.com/a"), "apa7")

    record, resolution = await app.redo_with_ai(saved.id)

    assert resolution.needs_manual
    assert record.text == saved.text
    assert "non-manual" in resolution.message


def test_store_is_required_for_saving():
    app = CitationApp()

    with pytest.raises(RuntimeError):
        app.list_citations()


def test_saved_timestamps_are_utc_aware(conn, build_app):
    app = build_app(lambda url: None)

    record = app.save(Metadata(title="Stamped", url="https://a.test"), "apa7")
    stored = get_citation(conn, record.id)

    assert record.created_at.utcoffset() == timedelta(0)
    assert stored.created_at.utcoffset() == timedelta(0)
    assert stored.updated_at >= stored.created_at
