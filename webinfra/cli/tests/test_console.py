"""Tests for the shared console helpers."""

from __future__ import annotations

from unittest.mock import patch

from webinfra.cli import _console as out


class TestConfirm:
    def test_assume_yes(self) -> None:
        with patch.object(out.Confirm, "ask") as mock_ask:
            assert out.confirm("Proceed?", assume_yes=True) is True
        mock_ask.assert_not_called()

    def test_non_interactive_is_no(self) -> None:
        with patch.object(out.sys, "stdin", **{"isatty.return_value": False}):
            assert out.confirm("Proceed?") is False

    def test_interactive(self) -> None:
        with (
            patch.object(out.sys, "stdin", **{"isatty.return_value": True}),
            patch.object(out.Confirm, "ask", return_value=True) as mock_ask,
        ):
            assert out.confirm("Proceed?") is True
        assert mock_ask.call_args.kwargs["default"] is False


def test_key_value_table_fills_blanks() -> None:
    table = out.key_value_table({"A": "1", "B": ""})
    assert table.row_count == 2
    assert list(table.columns[1].cells) == ["1", "-"]
