"""Tests for structural HTML comparison."""

import pytest

from spoofscout.analyzer.html_similarity import (
    compare_html,
    extract_fingerprint,
    has_login_form,
    input_similarity,
    jaccard,
    title_similarity,
)
from spoofscout.analyzer.models import InputDescriptor

LOGIN_PAGE = """
<html>
  <head><title>Acme Login</title></head>
  <body>
    <div id="main" class="container">
      <form id="login" class="login-form">
        <input type="email" name="username" id="user" class="field">
        <input type="password" name="password" id="pass" class="field">
        <button class="btn">Sign in</button>
      </form>
    </div>
  </body>
</html>
"""


def test_identical_documents_score_100():
    score = compare_html(LOGIN_PAGE, LOGIN_PAGE)
    assert score.overall == 100
    assert score.input_fields == 100
    assert score.css_classes == 100
    assert score.ids == 100
    assert score.title == 100


def test_unrelated_document_scores_zero():
    score = compare_html(LOGIN_PAGE, "<html><body><p>hello</p></body></html>")
    assert score.overall == 0
    assert score.title == 0


def test_partial_similarity_is_weighted():
    clone = LOGIN_PAGE.replace("Acme Login", "Acme Login - Secure")
    score = compare_html(LOGIN_PAGE, clone)
    assert score.title == 50
    assert score.overall == 95


def test_jaccard():
    assert jaccard(set(), set()) == 0.0
    assert jaccard({"a"}, {"a"}) == 1.0
    assert jaccard({"a", "b"}, {"b", "c"}) == pytest.approx(1 / 3)


def test_title_similarity():
    assert title_similarity("Acme", "Acme") == 1.0
    assert title_similarity("", "") == 1.0
    assert title_similarity("Acme", "Acme Login") == 0.5
    assert title_similarity("", "Acme") == 0.0
    assert title_similarity("Acme", "Other") == 0.0


def test_input_similarity_without_inputs_is_zero():
    assert input_similarity([], []) == 0.0


def test_input_similarity_type_only_overlap():
    a = [InputDescriptor(type="password")]
    b = [InputDescriptor(type="password")]
    assert input_similarity(a, b) == pytest.approx(0.4)


def test_extract_fingerprint():
    html = """
    <html><head><title> Portal </title></head><body>
      <div class="a b" id="x"></div>
      <div class="b"></div>
      <form><input name="q"></form>
      <a href="/about">About</a>
      <img src="/logo.png">
    </body></html>
    """
    fp = extract_fingerprint(html)
    assert fp.title == "Portal"
    assert fp.form_count == 1
    assert fp.input_fields == [InputDescriptor(type="text", name="q", id="")]
    assert fp.css_classes == ["b", "a"]
    assert fp.ids == {"x"}
    assert fp.links == ["/about"]
    assert fp.images == ["/logo.png"]


def test_css_class_ties_keep_first_occurrence():
    fp = extract_fingerprint('<div class="x y"></div>')
    assert fp.css_classes == ["x", "y"]


def test_has_login_form_with_login_wording():
    assert has_login_form('<form><input type="password" name="pw"><button>Sign in</button></form>')


def test_has_login_form_with_email_input():
    assert has_login_form('<form><input type="email"><input type="password"></form>')


def test_has_login_form_with_username_field_name():
    assert has_login_form('<form><input name="user_id"><input type="PASSWORD"></form>')


def test_has_login_form_requires_password():
    assert not has_login_form("<form><input name='username'><p>Login</p></form>")


def test_password_without_context_is_not_a_login_form():
    assert not has_login_form('<form><input type="password" name="pin"><button>Go</button></form>')


def test_inputs_and_title_alone_cap_overall_score():
    html = """
    <html><head><title>Login</title></head><body>
      <input type="password" name="pwd">
      <input type="email" name="user">
    </body></html>
    """
    score = compare_html(html, html)
    assert score.input_fields == 70
    assert score.css_classes == 0
    assert score.ids == 0
    assert score.title == 100
    assert score.overall == 38
