import pytest

from tests.fakes import make_ui, output_of

CHOICES = {"1": "Delete all", "2": "One by one", "3": "Abort"}


@pytest.mark.parametrize(
    "answers, expected",
    [
        ("1\n", "1"),
        (" 2 \n", "2"),
        ("", "3"),
        ("\n", "3"),
        ("maybe\n", "3"),
    ],
)
def test_ask_choice(answers, expected):
    ui = make_ui(answers)
    assert ui.ask_choice("Choice:", CHOICES, default="3") == expected


def test_ask_choice_is_case_insensitive():
    ui = make_ui("D\n")
    assert ui.ask_choice("?", {"d": "Delete", "k": "Keep"}, default="k") == "d"


def test_ask_choice_lists_options():
    ui = make_ui("")
    ui.ask_choice("Choice:", CHOICES, default="3")

    text = output_of(ui)
    assert "1. Delete all" in text
    assert "3. Abort" in text
    assert "Choice:" in text


def test_operation_summary_lists_failures():
    ui = make_ui()
    ui.show_operation_summary(["a.iso"], [("b.iso", "Permission denied")])

    text = output_of(ui)
    assert "Successfully deleted 1 files" in text
    assert "b.iso: Permission denied" in text


def test_show_configuration():
    ui = make_ui()
    ui.show_configuration({"Threshold": "100.0MB", "Directories": ["a", "b"]})
    assert "a, b" in output_of(ui)
