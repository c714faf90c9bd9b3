import pytest

from app.services.restrictions import ALL_CONTENT, Restrictions


def test_unrestricted_describes_all_content():
    r = Restrictions()
    assert r.is_unrestricted
    assert r.qualifiers() == []
    assert r.access_description(30) == "30 days free access to all content"
    assert r.as_dict() == {"content_type": None, "level": None, "language": None}


def test_level_only():
    r = Restrictions.of(level="Beginner")
    assert r.access_description(7).endswith("to Beginner level")


def test_all_axes_joined_in_fixed_order():
    r = Restrictions.of(language="Czech", level="Intermediate", content_type="clil")
    assert r.qualifiers() == [
        "CLIL",
        "Intermediate level",
        "Czech language support",
    ]
    assert r.access_description(14) == (
        "14 days free access to CLIL + Intermediate level + Czech language support"
    )


def test_content_type_and_language_skip_level():
    r = Restrictions.of(content_type="esl", language="English")
    assert r.scope() == "ESL + English language support"


@pytest.mark.parametrize("blank", ["", "   ", None])
def test_blank_values_are_absent(blank):
    r = Restrictions.of(blank, blank, blank)
    assert r == Restrictions()
    assert r.scope() == ALL_CONTENT


def test_structured_triple_keeps_original_case():
    r = Restrictions.of(" esl ", "Beginner", None)
    assert r.as_dict() == {"content_type": "esl", "level": "Beginner", "language": None}


def test_allows_matches_restricted_axes_case_insensitively():
    r = Restrictions.of(content_type="clil", level="Beginner")
    assert r.allows("CLIL", "beginner", "German")
    assert not r.allows("esl", "Beginner", "German")
    assert not r.allows("clil", "Intermediate", None)
    assert not r.allows("clil", None, None)


def test_unrestricted_allows_everything():
    assert Restrictions().allows("esl", "Intermediate", "Polish")
    assert Restrictions().allows(None, None, None)
