"""CLI interface for Study Agents.

Usage:
    python -m study_agents ask "I don't understand fractions" --grade 5
    python -m study_agents chat --grade 7 --subject Science
    python -m study_agents challenge --grade 6 --subject Maths
    python -m study_agents agents
"""

import argparse
import asyncio
import json
import logging

from agents.base import RequestContext
from agents.coordinator import MOTIVATOR, TUTOR, AgentCoordinator, build_coordinator
from backend.errors import AgentError

EXIT_COMMANDS = ("q", "quit", "exit")


def _context_from_args(args: argparse.Namespace) -> RequestContext:
    return RequestContext(
        grade=args.grade,
        subject=args.subject,
        difficulty=getattr(args, "difficulty", None),
    )


def _print_json(data: dict) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


async def cmd_ask(args: argparse.Namespace, coordinator: AgentCoordinator) -> None:
    """Route a single request and print the agent's response."""
    routed = await coordinator.route(args.request, _context_from_args(args))
    print(
        f"\n  [{routed.agent_id}] intent={routed.classification.type.value} "
        f"confidence={routed.classification.confidence:.2f}\n"
    )
    _print_json(routed.result.to_dict())


async def cmd_chat(args: argparse.Namespace, coordinator: AgentCoordinator) -> None:
    """Run an interactive tutoring session."""
    context = _context_from_args(args)
    session = coordinator.sessions.get_or_create()
    print("\n  Tutoring session (type 'q' to quit, 'reset' to start over)\n")

    while True:
        try:
            question = input("  you> ").strip()
        except EOFError:
            break
        if not question:
            continue
        if question.lower() in EXIT_COMMANDS:
            break
        if question.lower() == "reset":
            coordinator.reset_conversation(session.session_id)
            print("  (conversation cleared)\n")
            continue

        try:
            reply = await coordinator.dispatch(TUTOR, question, context, session.session_id)
        except (AgentError, ValueError) as exc:
            print(f"  ! {exc}\n")
            continue
        print(f"\n  tutor> {reply.response}\n")  # type: ignore[attr-defined]

    summary = coordinator.end_session(session.session_id)
    if summary is not None:
        print(f"\n  Session ended after {summary.exchanges} exchanges.")


async def cmd_challenge(args: argparse.Namespace, coordinator: AgentCoordinator) -> None:
    """Print today's challenge."""
    agent = coordinator.get_agent(MOTIVATOR)
    challenge = await agent.generate_daily_challenge(args.grade, args.subject or "General")  # type: ignore[attr-defined]
    _print_json(challenge.to_dict())


def cmd_agents(coordinator: AgentCoordinator) -> None:
    """List the registered agents."""
    print()
    for d in coordinator.describe_agents():
        print(f"  {d.id:<18} {d.name:<18} {d.role}")
    print()


def _add_context_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-g", "--grade", type=int, required=True, help="Class/grade (1-12)")
    parser.add_argument("-s", "--subject", default=None, help="Subject, e.g. Maths")


def main() -> None:
    """Entry point for the Study Agents CLI."""
    parser = argparse.ArgumentParser(
        prog="study_agents",
        description="Route learner requests to specialized learning agents",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # ask
    ask_parser = subparsers.add_parser("ask", help="Route one request to the best agent")
    ask_parser.add_argument("request", help="What the learner wants")
    _add_context_args(ask_parser)
    ask_parser.add_argument("-d", "--difficulty", choices=["easy", "medium", "hard"], default=None)

    # chat
    chat_parser = subparsers.add_parser("chat", help="Start an interactive tutoring session")
    _add_context_args(chat_parser)

    # challenge
    challenge_parser = subparsers.add_parser("challenge", help="Generate a daily challenge")
    _add_context_args(challenge_parser)

    # agents
    subparsers.add_parser("agents", help="List registered agents")

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    if not args.command:
        parser.print_help()
        return

    coordinator = build_coordinator()

    # agents is synchronous, all others are async.
    if args.command == "agents":
        cmd_agents(coordinator)
        return

    cmd_map = {
        "ask": cmd_ask,
        "chat": cmd_chat,
        "challenge": cmd_challenge,
    }

    try:
        asyncio.run(cmd_map[args.command](args, coordinator))
    except (AgentError, ValueError) as exc:
        parser.exit(1, f"error: {exc}\n")


if __name__ == "__main__":
    main()
