"""Tests for the pattern detector."""

import pytest

from piivault.detector import Detector, NAME_PATTERN, PHONE_PATTERN
from piivault.errors import InvalidInputError
from piivault.types import Category


@pytest.fixture
def detector():
    return Detector()


class TestCategories:

    def test_precedence_is_phone_email_name(self, detector):
        assert detector.categories == [Category.PHONE, Category.EMAIL, Category.NAME]

    def test_list_matchers(self, detector):
        names = [m["name"] for m in detector.list_matchers()]
        assert names == ["phone", "email", "name"]


class TestEmail:

    def test_finds_multiple_emails(self, detector):
        text = "Contact John Doe at john@example.com or jane@test.org for more info"
        matches = detector.find_all(text, Category.EMAIL)
        assert [m.text for m in matches] == ["john@example.com", "jane@test.org"]

    def test_positions(self, detector):
        text = "mail jane@test.org"
        (match,) = detector.find_all(text, Category.EMAIL)
        assert text[match.start:match.end] == "jane@test.org"
        assert match.category == Category.EMAIL

    def test_local_part_characters(self, detector):
        text = "write to first.last+tag_1%x-y@mail-server.co.uk"
        matches = detector.find_all(text, Category.EMAIL)
        assert [m.text for m in matches] == ["first.last+tag_1%x-y@mail-server.co.uk"]

    def test_requires_two_letter_tld(self, detector):
        assert detector.find_all("bad@host.c", Category.EMAIL) == []


class TestPhone:

    def test_formats(self, detector):
        text = "Call me at 123-456-7890 or (555) 123-4567 or +1 800 555 0123"
        matches = detector.find_all(text, Category.PHONE)
        assert [m.text for m in matches] == [
            " 123-456-7890 ",
            " (555) 123-4567 ",
            "+1 800 555 0123",
        ]

    def test_short_runs_ignored(self, detector):
        assert detector.find_all("room 12-34", Category.PHONE) == []

    def test_whitespace_only_runs_ignored(self, detector):
        assert PHONE_PATTERN.search("a        b")
        assert detector.find_all("a        b", Category.PHONE) == []

    def test_non_ascii_digits_ignored(self, detector):
        # Arabic-Indic numerals
        text = "call \u0665\u0665\u0665\u0661\u0662\u0663\u0664\u0665\u0666\u0667 now"
        assert detector.find_all(text, Category.PHONE) == []

    def test_long_digit_runs_match(self, detector):
        # Order numbers look like phones too
        matches = detector.find_all("order 20240117001", Category.PHONE)
        assert [m.text for m in matches] == [" 20240117001"]

    def test_duplicates_kept(self, detector):
        text = "555-123-4567 and 555-123-4567"
        matches = detector.find_all(text, Category.PHONE)
        assert [m.text.strip() for m in matches] == ["555-123-4567", "555-123-4567"]


class TestName:

    def test_two_words(self, detector):
        matches = detector.find_all("John Doe called", Category.NAME)
        assert [m.text for m in matches] == ["John Doe"]

    def test_three_words_max(self, detector):
        matches = detector.find_all("Para MarÃ­a JosÃ© LÃ³pez", Category.NAME)
        assert [m.text for m in matches] == ["MarÃ­a JosÃ© LÃ³pez"]

    def test_stopword_not_first_word(self, detector):
        matches = detector.find_all("Contact John Doe at home", Category.NAME)
        assert [m.text for m in matches] == ["John Doe"]

    def test_stopword_alone_leaves_single_word(self, detector):
        assert detector.find_all("With Jane", Category.NAME) == []

    def test_stopword_prefix_of_longer_word(self):
        # "An" is a stopword, "Ana" is not
        assert NAME_PATTERN.search("Ana Torres").group() == "Ana Torres"

    def test_single_capitalized_word(self, detector):
        assert detector.find_all("Hello there", Category.NAME) == []

    def test_tokens_never_look_like_names(self, detector):
        assert detector.find_all("NAME_1a2b3c4d EMAIL_deadbeef", Category.NAME) == []


class TestDetectPII:

    def test_summary(self, detector):
        text = "Contact John Doe at john@example.com or 555-123-4567"
        assert detector.detect_pii(text) == {
            "emails": ["john@example.com"],
            "phones": [" 555-123-4567"],
            "names": ["John Doe"],
        }

    def test_summary_deduplicates(self, detector):
        text = "jane@test.org, jane@test.org"
        assert detector.detect_pii(text)["emails"] == ["jane@test.org"]

    def test_detect_keeps_duplicates(self, detector):
        text = "jane@test.org, jane@test.org"
        assert len(detector.detect(text)[Category.EMAIL]) == 2

    def test_nothing_found(self, detector):
        assert detector.detect_pii("nothing here") == {
            "emails": [], "phones": [], "names": [],
        }

    @pytest.mark.parametrize("bad", ["", None, 42, ["text"]])
    def test_invalid_input(self, detector, bad):
        with pytest.raises(InvalidInputError):
            detector.detect_pii(bad)
