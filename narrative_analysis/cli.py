"""
Manuscript Analysis CLI
=======================

Run the engine over a plain-text manuscript without an editor.

COMMANDS:
- analyze: Print the AnalysisResult as JSON
- outline: Print the outline extracted from headings as JSON

USAGE:
    python -m narrative_analysis analyze draft.md --extract-outline
    python -m narrative_analysis analyze draft.txt --outline outline.json
    python -m narrative_analysis outline draft.md
"""
import argparse
import json
import logging
import sys
from typing import List, Optional, Sequence

from .contracts.outline import OutlineEntry
from .engine import AnalysisEngine, EngineConfig
from .loops import AnalyzerConfig
from .loops.vocabulary import LoopVocabulary
from .metrics import MetricsConfig
from .metrics.vocabulary import StyleVocabulary
from .outline import extract_outline
from .serialization import to_json

logger = logging.getLogger(__name__)


def read_text(path: str) -> str:
    with open(path, 'rb') as f:
        return f.read().decode('utf-8', errors='replace')


def load_outline(path: str) -> List[OutlineEntry]:
    """Outline JSON: a list of {"title", "level", "range": {"start", "end"}, "page"}."""
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"{path}: outline must be a JSON list")
    return [OutlineEntry.from_dict(item) for item in data]


def build_engine(args) -> AnalysisEngine:
    vocabulary = LoopVocabulary.from_json(args.vocabulary) if args.vocabulary else LoopVocabulary()
    style = StyleVocabulary.from_json(args.style_vocabulary) if args.style_vocabulary else StyleVocabulary()
    return AnalysisEngine(EngineConfig(
        analyzer=AnalyzerConfig(vocabulary=vocabulary),
        metrics=MetricsConfig(words_per_page=args.words_per_page, style=style),
    ))


def cmd_analyze(args) -> int:
    text = read_text(args.file)
    outline: Optional[Sequence[OutlineEntry]] = None
    if args.outline:
        outline = load_outline(args.outline)
    elif args.extract_outline:
        outline = extract_outline(text, words_per_page=args.words_per_page)

    result = build_engine(args).analyze_text(text, outline)
    logger.info(
        "Analyzed %s: %d words, %d findings%s",
        args.file, result.word_count, len(result.findings),
        " (truncated)" if result.truncated else ""
    )
    print(to_json(result))
    return 1 if args.fail_on_findings and result.has_findings else 0


def cmd_outline(args) -> int:
    entries = extract_outline(read_text(args.file), words_per_page=args.words_per_page)
    print(to_json(list(entries)))
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="narrative_analysis",
        description="Manuscript metrics and decision-belief loop detection"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr")
    parser.add_argument("--words-per-page", type=int, default=250, help="Page estimate for outlines and metrics")

    subparsers = parser.add_subparsers(dest="command")

    analyze_parser = subparsers.add_parser("analyze", help="Analyze a manuscript")
    analyze_parser.add_argument("file", help="UTF-8 text file")
    source = analyze_parser.add_mutually_exclusive_group()
    source.add_argument("--outline", help="Outline JSON file")
    source.add_argument("--extract-outline", action="store_true", help="Derive the outline from headings")
    analyze_parser.add_argument("--vocabulary", help="Vocabulary JSON file (keys replace the defaults)")
    analyze_parser.add_argument("--style-vocabulary", help="Style word-list JSON file (keys replace the defaults)")
    analyze_parser.add_argument("--fail-on-findings", action="store_true", help="Exit 1 when loops are found")

    outline_parser = subparsers.add_parser("outline", help="Extract an outline from headings")
    outline_parser.add_argument("file", help="UTF-8 text file")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr
    )

    try:
        if args.command == "analyze":
            return cmd_analyze(args)
        elif args.command == "outline":
            return cmd_outline(args)
    except (OSError, ValueError, KeyError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    parser.print_help()
    return 2


if __name__ == "__main__":
    sys.exit(main())
