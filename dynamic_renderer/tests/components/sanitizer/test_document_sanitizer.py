import pytest
from bs4 import BeautifulSoup
from unittest.mock import patch

from dynamic_renderer.components.sanitizer.document_sanitizer import DocumentSanitizer
from dynamic_renderer.core.config import SanitizerSettings

SOURCE_URL = "https://www.example.com/products/42?ref=home"


def parse(html):
    return BeautifulSoup(html, "html.parser")


@pytest.fixture
def sanitizer():
    return DocumentSanitizer()


def test_removes_inline_and_external_scripts(sanitizer):
    html = (
        "<html><head><script src='/app.js'></script></head>"
        "<body><p>Hello</p><script>\n  var x = 1;\n  console.log('<div>');\n</script></body></html>"
    )
    soup = parse(sanitizer.sanitize(html, SOURCE_URL))
    assert soup.find_all("script") == []
    assert soup.find("p").get_text() == "Hello"


def test_injects_charset_and_base_at_top_of_head(sanitizer):
    html = "<html><head><title>T</title></head><body></body></html>"
    soup = parse(sanitizer.sanitize(html, SOURCE_URL))

    head_children = [child for child in soup.head.children if child.name]
    assert head_children[0].name == "base"
    assert head_children[0]["href"] == "https://www.example.com"
    assert head_children[1].name == "meta"
    assert head_children[1]["charset"] == "utf-8"
    assert head_children[2].name == "title"


def test_existing_charset_is_reused_and_normalized(sanitizer):
    html = (
        "<html><head><title>T</title><meta charset='ISO-8859-1'>"
        "<meta http-equiv='Content-Type' content='text/html; charset=latin1'>"
        "<meta name='viewport' content='width=device-width'></head></html>"
    )
    soup = parse(sanitizer.sanitize(html, SOURCE_URL))

    charset_metas = soup.find_all("meta", charset=True)
    assert len(charset_metas) == 1
    assert charset_metas[0]["charset"] == "utf-8"
    assert soup.find("meta", attrs={"http-equiv": "Content-Type"}) is None
    assert soup.find("meta", attrs={"name": "viewport"}) is not None


def test_http_equiv_only_is_replaced(sanitizer):
    html = "<html><head><meta http-equiv='content-type' content='text/html; charset=latin1'></head></html>"
    soup = parse(sanitizer.sanitize(html, SOURCE_URL))
    assert [m.attrs for m in soup.find_all("meta")] == [{"charset": "utf-8"}]


def test_multiple_heads_each_get_declarations(sanitizer):
    html = "<html><head><title>A</title></head><head><title>B</title></head><body></body></html>"
    soup = parse(sanitizer.sanitize(html, SOURCE_URL))
    heads = soup.find_all("head")
    assert len(heads) == 2
    for head in heads:
        assert len(head.find_all("meta", charset="utf-8")) == 1
        assert len(head.find_all("base", href="https://www.example.com")) == 1


def test_sanitize_is_idempotent(sanitizer):
    html = (
        "<html><head><meta charset='utf-8'><script>x()</script><title>T</title></head>"
        "<body><img src='/logo.png'><a href='/about'>About</a></body></html>"
    )
    once = sanitizer.sanitize(html, SOURCE_URL)
    twice = sanitizer.sanitize(once, SOURCE_URL)
    assert once == twice


@pytest.mark.parametrize("html", [
    "<!DOCTYPE html><html><head><title>T</title></head><body></body></html>",
    "<!DOCTYPE html>\n\n  <html><head><title>T</title></head><body></body></html>",
    "<!doctype html>\n<html><head></head><body><script>x()</script></body></html>\n",
])
def test_sanitize_is_idempotent_with_doctype(sanitizer, html):
    outputs = [sanitizer.sanitize(html, SOURCE_URL)]
    for _ in range(3):
        outputs.append(sanitizer.sanitize(outputs[-1], SOURCE_URL))

    assert outputs[0] == outputs[1] == outputs[2] == outputs[3]
    assert "\n\n" not in outputs[0].split("<html", 1)[0]
    assert parse(outputs[0]).find("meta", charset="utf-8") is not None


def test_existing_matching_base_not_duplicated(sanitizer):
    html = "<html><head><base href='https://www.example.com'><base href='https://www.example.com'></head></html>"
    soup = parse(sanitizer.sanitize(html, SOURCE_URL))
    assert len(soup.find_all("base")) == 1


def test_document_without_head_passes_through(sanitizer):
    html = "<p>fragment<script>evil()</script></p>"
    result = sanitizer.sanitize(html, SOURCE_URL)
    assert "<script" not in result
    assert "fragment" in result


@pytest.mark.parametrize("garbage", ["", "<<<>>>", "<html><head><meta", "\x00\x01 not html", "<head></body></html>"])
def test_never_raises_on_malformed_input(sanitizer, garbage):
    assert isinstance(sanitizer.sanitize(garbage, SOURCE_URL), str)


def test_parser_failure_returns_input_unchanged(sanitizer):
    with patch.object(DocumentSanitizer, "_sanitize", side_effect=RuntimeError("parser blew up")):
        assert sanitizer.sanitize("<html>raw</html>", SOURCE_URL) == "<html>raw</html>"


def test_toggles_disable_script_removal_and_base_injection():
    sanitizer = DocumentSanitizer(SanitizerSettings(remove_scripts=False, inject_base_url=False))
    html = "<html><head><script>x()</script></head></html>"
    soup = parse(sanitizer.sanitize(html, SOURCE_URL))
    assert soup.find("script") is not None
    assert soup.find("base") is None
    assert soup.find("meta", charset="utf-8") is not None  # charset is always enforced


def test_unusable_source_url_skips_base(sanitizer):
    soup = parse(sanitizer.sanitize("<html><head></head></html>", "not-a-url"))
    assert soup.find("base") is None
    assert soup.find("meta", charset="utf-8") is not None
