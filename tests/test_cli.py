"""
Unit tests for the command-line parser.
"""

from extract_model import build_parser
from tabular_metadata.utils.settings import ExtractorSettings


class TestParser:
    """Tests for settings-backed CLI defaults."""

    def test_defaults_come_from_settings(self) -> None:
        """Unset options fall back to the saved settings."""
        settings = ExtractorSettings(sample_rows=250, output_path="out.json")

        args = build_parser(settings).parse_args(["myserver"])

        assert args.source == "myserver"
        assert args.sample_rows == 250
        assert args.output == "out.json"
        assert args.analyze_direct_query is False

    def test_direct_query_flag_enables(self) -> None:
        """--analyze-direct-query turns sampling of DirectQuery tables on."""
        args = build_parser(ExtractorSettings()).parse_args(["myserver", "--analyze-direct-query"])

        assert args.analyze_direct_query is True

    def test_direct_query_can_be_disabled_over_settings(self) -> None:
        """--no-analyze-direct-query wins over a settings file that enables it."""
        settings = ExtractorSettings(analyze_direct_query=True)

        assert build_parser(settings).parse_args(["myserver"]).analyze_direct_query is True
        args = build_parser(settings).parse_args(["myserver", "--no-analyze-direct-query"])

        assert args.analyze_direct_query is False
