"""CLI entry point — extract model metadata from a tabular server or a model.bim file."""

import argparse
import asyncio
import logging
import shlex
import sys
from pathlib import Path

from tabular_metadata.extractors.orchestrator import ExtractionOptions, ModelReader
from tabular_metadata.extractors.tom_extractor import extract_model
from tabular_metadata.parsers.bim_parser import detect_input_type, load_database
from tabular_metadata.utils.export import write_model
from tabular_metadata.utils.settings import load_settings, save_settings


def build_parser(settings) -> argparse.ArgumentParser:
    """Command-line parser; defaults come from the saved settings."""
    parser = argparse.ArgumentParser(
        description="Extract tabular model metadata (tables, columns, measures, "
                    "relationships, roles) to a JSON file.",
    )
    parser.add_argument(
        "source",
        nargs="?",
        help="model.bim file, semantic model folder, server name, or connection string",
    )
    parser.add_argument(
        "-d", "--database",
        help="Database name (required with a bare server name)",
    )
    parser.add_argument(
        "-o", "--output",
        default=settings.output_path,
        help=f"Output JSON file (default: {settings.output_path})",
    )
    parser.add_argument(
        "--server-command",
        default=settings.server_command,
        help=f"Command to start the tabular MCP server (default: {settings.server_command})",
    )
    parser.add_argument(
        "--app-name",
        default=settings.application_name,
        help="Calling application name recorded in the output",
    )
    parser.add_argument(
        "--app-version",
        default=settings.application_version,
        help="Calling application version recorded in the output",
    )
    parser.add_argument(
        "--no-statistics",
        action="store_true",
        help="Skip statistics that require querying the data",
    )
    parser.add_argument(
        "--sample-rows",
        type=int,
        default=settings.sample_rows,
        help="Maximum rows sampled per column when reading statistics (0 = provider default)",
    )
    parser.add_argument(
        "--analyze-direct-query",
        action=argparse.BooleanOptionalAction,
        default=settings.analyze_direct_query,
        help="Also sample DirectQuery tables (--no-analyze-direct-query overrides the settings file)",
    )
    parser.add_argument(
        "--discover",
        action="store_true",
        help="List available MCP server tools and exit",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser


def main():
    settings = load_settings()
    parser = build_parser(settings)
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    server_cmd = shlex.split(args.server_command)

    if args.discover:
        asyncio.run(_discover_tools(server_cmd))
        return

    if not args.source:
        parser.error("source is required unless --discover is given")

    try:
        if detect_input_type(args.source) == "bim":
            model = extract_model(load_database(args.source), args.app_name, args.app_version or None)
        else:
            reader = ModelReader(server_cmd)
            options = ExtractionOptions(
                read_statistics_from_data=not args.no_statistics and settings.read_statistics_from_data,
                sample_rows=args.sample_rows,
                analyze_direct_query=args.analyze_direct_query,
            )
            if args.database:
                model = asyncio.run(reader.get_model_from_server(
                    args.source, args.database, args.app_name, args.app_version or None, options,
                ))
            else:
                model = asyncio.run(reader.get_model(
                    args.source, args.app_name, args.app_version or None, options,
                ))
            settings.last_connection_string = args.source
            save_settings(settings)
    except (FileNotFoundError, ValueError, LookupError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    output = write_model(model, Path(args.output))

    print(f"\nExtraction complete:")
    print(f"  Model:         {model.model_name}")
    print(f"  Tables:        {len(model.tables)}")
    print(f"  Measures:      {sum(len(t.measures) for t in model.tables)}")
    print(f"  Relationships: {len(model.relationships)}")
    print(f"  Roles:         {len(model.roles)}")
    print(f"  Output:        {output}")


async def _discover_tools(server_cmd: list[str]):
    """Connect to MCP server and list available tools."""
    from tabular_metadata.mcp_client.client import MCPClient

    client = MCPClient(server_cmd)
    async with client.connect() as c:
        tools = await c.list_tools()
        print(f"Available MCP tools ({len(tools)}):\n")
        for tool in tools:
            print(f"  {tool['name']}")
            if tool.get("description"):
                print(f"    {tool['description']}")
            print()


if __name__ == "__main__":
    main()
