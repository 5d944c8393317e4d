"""
Command line interface for the Deep Search Agent.

Loads API keys from environment variables (via `.env`), creates a
DeepSearchAgent and researches the prompt given on the command line, or enters
an interactive loop when no prompt is given. Each report is written to disk.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from deep_search import DeepSearchAgent, SearchFilters
from deep_search.query_planner import MAX_PLANNED_QUERIES
from deep_search.report import save_report

# --- Logging configuration ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Recursive deep web research with a synthesized report.")
    parser.add_argument("prompt", nargs="?", help="Research prompt. Omit to start the interactive loop.")
    parser.add_argument("--depth", type=int, default=2, help="Recursive refinement levels (default: 2).")
    parser.add_argument(
        "--breadth", type=int, default=5, help=f"Queries per level, 1-{MAX_PLANNED_QUERIES} (default: 5)."
    )
    parser.add_argument(
        "--focus",
        action="append",
        default=[],
        help="Focus topic bound to one depth level; repeatable. Sets depth to the number of topics.",
    )
    parser.add_argument("--knowledge-base", dest="knowledge_base_id", help="OpenAI vector store id.")
    parser.add_argument("--start-date", help="Only pages published on or after this date (YYYY-MM-DD).")
    parser.add_argument("--end-date", help="Only pages published on or before this date (YYYY-MM-DD).")
    parser.add_argument("--include-domain", action="append", default=[], help="Restrict search to a domain.")
    parser.add_argument("--exclude-domain", action="append", default=[], help="Exclude a domain.")
    parser.add_argument("--include-text", action="append", default=[], help="Phrase pages must contain.")
    parser.add_argument("--exclude-text", action="append", default=[], help="Phrase pages must not contain.")
    system = parser.add_mutually_exclusive_group()
    system.add_argument("--system-prompt", help="System prompt for the report.")
    system.add_argument("--system-prompt-file", type=Path, help="File holding the report system prompt.")
    parser.add_argument("--output", type=Path, default=Path("report.md"), help="Report path (default: report.md).")
    return parser


def validate_args(parser: argparse.ArgumentParser, args: argparse.Namespace) -> argparse.Namespace:
    args.focus = [topic.strip() for topic in args.focus if topic.strip()]
    if args.focus:
        args.depth = len(args.focus)
    if args.depth < 1:
        parser.error("--depth must be at least 1.")
    if not 1 <= args.breadth <= MAX_PLANNED_QUERIES:
        parser.error(f"--breadth must be between 1 and {MAX_PLANNED_QUERIES}.")
    if args.prompt is not None and not args.prompt.strip():
        parser.error("prompt must not be empty.")
    if args.system_prompt_file is not None:
        if not args.system_prompt_file.exists():
            parser.error(f"system prompt file not found: {args.system_prompt_file}")
        args.system_prompt = args.system_prompt_file.read_text(encoding="utf-8").strip()
    return args


def filters_from_args(args: argparse.Namespace) -> SearchFilters:
    return SearchFilters(
        start_published_date=args.start_date,
        end_published_date=args.end_date,
        include_domains=args.include_domain or None,
        exclude_domains=args.exclude_domain or None,
        include_text=args.include_text or None,
        exclude_text=args.exclude_text or None,
    )


def research_once(agent: DeepSearchAgent, prompt: str, args: argparse.Namespace) -> str:
    report = agent.invoke(
        prompt,
        depth=args.depth,
        breadth=args.breadth,
        focus_topics=args.focus,
        filters=filters_from_args(args),
        knowledge_base_id=args.knowledge_base_id,
        system_prompt=args.system_prompt,
    )
    save_report(report, args.output)
    return report


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = validate_args(parser, parser.parse_args(argv))

    logger.info("Loading environment variables from .env file...")
    load_dotenv()

    try:
        agent = DeepSearchAgent()
    except Exception as exc:
        logger.exception("Failed to initialize the research agent: %s", exc)
        return 1

    if args.prompt:
        try:
            research_once(agent, args.prompt.strip(), args)
        except Exception as exc:
            logger.exception("Deep research failed: %s", exc)
            print(f"An error occurred: {exc}", file=sys.stderr)
            return 1
        print(f"Report written to {args.output}")
        return 0

    print(
        "\nWelcome to Deep Search!\n"
        "Type a research prompt and press Enter.  Type 'quit' to exit.\n"
    )
    while True:
        try:
            prompt = input("> ").strip()
        except EOFError:
            logger.info("EOF received; exiting.")
            break

        if not prompt:
            continue
        if prompt.lower() in {"quit", "exit", "q"}:
            logger.info("User requested exit.")
            break

        try:
            logger.info("Processing prompt: %s", prompt)
            report = research_once(agent, prompt, args)
            print(f"\n{report}\n")
            logger.info("Report written to %s", args.output)
        except Exception as exc:
            logger.exception("Error while processing prompt: %s", exc)
            print(f"An error occurred: {exc}\n")

    logger.info("Session ended. Goodbye!")
    print("Goodbye!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
