"""Command-line interface for Gold Digger.

Provides subcommands for chatting with the orchestrator and for inspecting
the pieces around it (governor, scorer, memory, market data, configuration).  Each
subcommand imports its dependencies lazily so that ``golddigger score``
works without touching the model or market layers.

Entry point
-----------
The ``main()`` function is registered as a console script in
``pyproject.toml``::

    [project.scripts]
    golddigger = "golddigger.cli:main"

Usage examples::

    golddigger chat "Should I buy AAPL?"
    golddigger chat "hey" --quick --json
    golddigger govern "my key is sk-ant-..." --agent investment
    golddigger score --growth growing --competition low --pain-points 4
    golddigger memory recall "nvidia earnings" -n 5
    golddigger config set preferences.enable_disclaimers false
    golddigger config test --backend openrouter
    golddigger market screen growth
    golddigger health
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any

_LABELS = ["investment", "research", "general"]
_BOOL_WORDS = {"true": True, "1": True, "yes": True, "false": False, "0": False, "no": False}


def _build_parser() -> argparse.ArgumentParser:
    """Build the top-level argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="golddigger",
        description="Gold Digger: routed investment and market research assistant.",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        default=False,
        help="Show version and exit.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Log pipeline progress to stderr.",
    )
    parser.add_argument(
        "--plain",
        action="store_true",
        default=False,
        help="Plain-text output even on a terminal.",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available subcommands")

    # -- chat --------------------------------------------------------------
    chat_parser = subparsers.add_parser(
        "chat",
        help="Send one message through the orchestrator.",
        description="Classify, govern and answer a single message.",
    )
    chat_parser.add_argument("message", type=str, help="The message to send.")
    chat_parser.add_argument(
        "--agent",
        type=str,
        default=None,
        choices=_LABELS,
        help="Force an agent instead of classifying.",
    )
    chat_parser.add_argument(
        "--quick",
        action="store_true",
        default=False,
        help="Quick chat: skip classification and answer conversationally.",
    )
    chat_parser.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Print the response as JSON.",
    )
    chat_parser.add_argument(
        "--no-memory",
        action="store_true",
        default=False,
        help="Do not read or write the memory file.",
    )

    # -- govern ------------------------------------------------------------
    govern_parser = subparsers.add_parser(
        "govern",
        help="Show the governance decision for a text.",
        description="Run the safety governor without calling any model.",
    )
    govern_parser.add_argument("text", type=str, help="Text to check.")
    govern_parser.add_argument(
        "--agent",
        type=str,
        default="general",
        choices=_LABELS,
        help="Agent label the text would be routed to. (default: general)",
    )

    # -- score -------------------------------------------------------------
    score_parser = subparsers.add_parser(
        "score",
        help="Compute an opportunity score.",
        description="Score a niche from its growth, competition and pain-point count.",
    )
    score_parser.add_argument(
        "--growth",
        type=str,
        default="stable",
        choices=["growing", "stable", "declining"],
        help="Growth rate. (default: stable)",
    )
    score_parser.add_argument(
        "--competition",
        type=str,
        default="medium",
        choices=["low", "medium", "high"],
        help="Competition level. (default: medium)",
    )
    score_parser.add_argument(
        "--pain-points",
        type=int,
        default=0,
        help="Number of identified pain points. (default: 0)",
    )

    # -- memory ------------------------------------------------------------
    memory_parser = subparsers.add_parser(
        "memory",
        help="Inspect or prune the memory file.",
        description="Work with the JSON memory store in the data directory.",
    )
    memory_sub = memory_parser.add_subparsers(dest="memory_command")
    memory_sub.add_parser("stats", help="Record counts and age range.")
    recent_parser = memory_sub.add_parser("recent", help="Most recent conversations.")
    recent_parser.add_argument("-n", type=int, default=10, help="How many. (default: 10)")
    recall_parser = memory_sub.add_parser("recall", help="Conversations relevant to a query.")
    recall_parser.add_argument("query", type=str)
    recall_parser.add_argument("-n", type=int, default=5, help="How many. (default: 5)")
    prune_parser = memory_sub.add_parser("prune", help="Drop records older than DAYS.")
    prune_parser.add_argument("days", type=float)

    # -- config ------------------------------------------------------------
    config_parser = subparsers.add_parser(
        "config",
        help="Show or change configuration.",
        description="Show the masked configuration, set one value, or test the API keys.",
    )
    config_sub = config_parser.add_subparsers(dest="config_command")
    config_sub.add_parser("show", help="Print the configuration with keys masked.")
    set_parser = config_sub.add_parser(
        "set",
        help="Set one value, e.g. 'routing_mode hybrid' or 'preferences.enable_disclaimers false'.",
    )
    set_parser.add_argument("key", type=str)
    set_parser.add_argument("value", type=str)
    check_parser = config_sub.add_parser(
        "test",
        help="Make one minimal call through each backend to verify its API key.",
    )
    check_parser.add_argument(
        "--backend",
        choices=["anthropic", "openrouter"],
        default=None,
        help="Check only this backend. (default: both)",
    )

    # -- market ------------------------------------------------------------
    market_parser = subparsers.add_parser(
        "market",
        help="Screen stocks, quote a crypto pair or list sector peers.",
        description="Query Yahoo Finance directly, without a model call.",
    )
    market_sub = market_parser.add_subparsers(dest="market_command", required=True)
    screen_parser = market_sub.add_parser(
        "screen",
        help="Rank a stock basket by 5-day change "
        "(blue_chip, growth, dividend, value, momentum, quick_wins).",
    )
    screen_parser.add_argument("criteria", type=str)
    crypto_parser = market_sub.add_parser("crypto", help="24h, 7d and 30d changes of SYMBOL-USD.")
    crypto_parser.add_argument("symbol", type=str)
    peers_parser = market_sub.add_parser("peers", help="Sector peers of a stock.")
    peers_parser.add_argument("symbol", type=str)

    # -- health ------------------------------------------------------------
    subparsers.add_parser(
        "health",
        help="Show routing mode, backends and memory status.",
        description="Report the effective routing mode, configured backends and data directory.",
    )

    return parser


def _renderer(args: argparse.Namespace) -> Any:
    from golddigger.presentation.console import ConsoleRenderer

    return ConsoleRenderer(use_rich=False if args.plain else None)


# =========================================================================
# Subcommand handlers
# =========================================================================

def _cmd_chat(args: argparse.Namespace) -> int:
    """Handle the ``chat`` subcommand."""
    from golddigger.graph.context import build_context
    from golddigger.graph.orchestrator import Orchestrator

    context = build_context(use_memory=not args.no_memory)
    orchestrator = Orchestrator(context)
    response = orchestrator.run(args.message, agent=args.agent, quick_chat=args.quick)

    out = _renderer(args)
    if args.json:
        out.print_json(response.to_dict())
    else:
        out.print_reply(response.reply, response.agent_label, response.stage.value)
    return 0


def _cmd_govern(args: argparse.Namespace) -> int:
    """Handle the ``govern`` subcommand."""
    from golddigger.infrastructure.config import load_config
    from golddigger.services.governor import SafetyGovernor

    prefs = load_config().preferences
    governor = SafetyGovernor(
        enable_disclaimers=prefs.enable_disclaimers and prefs.enable_safety_governor
    )
    decision = governor.check(args.text, args.agent)
    _renderer(args).print_decision(decision)
    return 0 if decision.approved else 2


def _cmd_score(args: argparse.Namespace) -> int:
    """Handle the ``score`` subcommand."""
    from golddigger.services.scoring import calculate_opportunity_score

    if args.pain_points < 0:
        print("Error: --pain-points must be >= 0", file=sys.stderr)
        return 1
    score = calculate_opportunity_score(args.growth, args.competition, args.pain_points)
    _renderer(args).print_score(score)
    return 0


def _cmd_memory(args: argparse.Namespace) -> int:
    """Handle the ``memory`` subcommand."""
    from golddigger.infrastructure.memory_store import MemoryStore

    store = MemoryStore()
    out = _renderer(args)
    command = args.memory_command or "stats"

    if command == "stats":
        out.print_stats(f"Memory ({store.path})", store.get_stats())
    elif command == "recent":
        out.print_conversations(store.get_recent_conversations(args.n))
    elif command == "recall":
        out.print_conversations(store.recall_relevant(args.query, args.n))
    elif command == "prune":
        removed = store.prune_old_memories(args.days)
        print(f"Removed {removed} records older than {args.days:g} days.")
    return 0


def _parse_setting(key: str, value: str) -> dict[str, Any]:
    """Turn ``section.field VALUE`` into :func:`update_config` keyword arguments."""
    section, _, name = key.partition(".")
    parsed: Any = value
    if value.lower() in _BOOL_WORDS:
        parsed = _BOOL_WORDS[value.lower()]
    if not name:
        return {section: parsed}
    if section == "user_profile" and name == "focus_areas":
        parsed = [part.strip() for part in value.split(",") if part.strip()]
    return {section: {name: parsed}}


def _cmd_config(args: argparse.Namespace) -> int:
    """Handle the ``config`` subcommand."""
    from golddigger.infrastructure.config import load_config, public_config, update_config

    out = _renderer(args)
    if args.config_command == "set":
        try:
            update_config(**_parse_setting(args.key, args.value))
        except (TypeError, ValueError) as exc:
            out.print_error(f"Cannot set {args.key}: {exc}")
            return 1
        print(f"Set {args.key}.")
        return 0
    if args.config_command == "test":
        return _check_keys(args)

    out.print_json(public_config(load_config()))
    return 0


def _check_keys(args: argparse.Namespace) -> int:
    """Handle ``config test``; exit 1 unless every checked backend answered."""
    from golddigger.domain.enums import BackendKind
    from golddigger.infrastructure.config import load_config
    from golddigger.infrastructure.llm.factory import check_connections

    kinds = (BackendKind(args.backend),) if args.backend else tuple(BackendKind)
    results = check_connections(load_config(), kinds)
    out = _renderer(args)
    for result in results:
        out.print_stats(
            f"Backend: {result.backend.value}",
            {"success": result.success, "message": result.message},
        )
    return 0 if all(r.success for r in results) else 1


def _cmd_market(args: argparse.Namespace) -> int:
    """Handle the ``market`` subcommand."""
    from dataclasses import asdict

    from golddigger.infrastructure.market_data import YahooFinanceClient

    client = YahooFinanceClient()
    try:
        if args.market_command == "screen":
            result: Any = client.screen_stocks(args.criteria)
        elif args.market_command == "crypto":
            result = client.get_crypto_data(args.symbol)
        else:
            result = client.get_related_assets(args.symbol)
    finally:
        client.close()
    _renderer(args).print_json(asdict(result))
    return 1 if result.error else 0


def _cmd_health(args: argparse.Namespace) -> int:
    """Handle the ``health`` subcommand."""
    from golddigger import __version__
    from golddigger.infrastructure.config import load_config, resolve_data_dir
    from golddigger.infrastructure.llm.factory import build_router
    from golddigger.infrastructure.memory_store import MemoryStore

    config = load_config()
    router = build_router(config)
    stats = MemoryStore().get_stats()
    health = {
        "version": __version__,
        "routingMode": router.mode.value,
        "dataDir": str(resolve_data_dir()),
        "conversations": stats["totalConversations"],
        "investments": stats["totalInvestments"],
        "research": stats["totalResearch"],
        "backends": router.health_check(),
    }
    _renderer(args).print_health(health)
    return 0


# =========================================================================
# Main entry point
# =========================================================================

def main(argv: list[str] | None = None) -> None:
    """CLI entry point.

    Parameters
    ----------
    argv:
        Command-line arguments.  Defaults to ``sys.argv[1:]``.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        from golddigger import __version__
        print(f"golddigger {__version__}")
        sys.exit(0)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    handlers: dict[str, Any] = {
        "chat": _cmd_chat,
        "govern": _cmd_govern,
        "score": _cmd_score,
        "memory": _cmd_memory,
        "config": _cmd_config,
        "market": _cmd_market,
        "health": _cmd_health,
    }

    handler = handlers.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(1)

    try:
        exit_code = handler(args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        exit_code = 130
    except Exception as exc:
        from golddigger.services.fallbacks import sanitize_error_text

        print(f"Error: {sanitize_error_text(str(exc))}", file=sys.stderr)
        exit_code = 1

    sys.exit(exit_code)
