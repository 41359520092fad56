"""
Offline console demo: drives the callback queue from an operator prompt.

Uses the real queue service, transition table, retry policy and stats
with an in-memory store and the demo seed data. No store file, no
telephony, no network calls. Designed for live demo walkthroughs.

Usage:
    python console_demo.py
    python console_demo.py --scenario priority
    python console_demo.py --scenario retry
    python console_demo.py --scenario handoff
"""

import argparse
import asyncio
import shlex
from typing import Any, Awaitable, Optional

from callback_queue.config import settings
from callback_queue.errors import CallbackQueueError
from callback_queue.queue import CallbackQueueService
from callback_queue.schemas.callback_schema import CallbackPriority, CallbackRequest
from callback_queue.tools.agent_directory import InMemoryAgentDirectory
from callback_queue.tools.clock import SystemClock
from callback_queue.tools.notification_sink import CollectingNotificationSink
from callback_queue.tools.seed import build_demo_callbacks
from callback_queue.tools.store import InMemoryCallbackStore

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

HELP = """Commands:
  list                                  show the pending queue and schedule
  show <id>                             show one callback with its notes
  create <name> <phone> <priority> <reason...>
  notify <id> | accept <id> | reject <id> [reason...]
  start <id> | complete <id> [notes...] | retry <id>
  fail <id> [reason...] | cancel <id> [reason...] | release <id>
  tick                                  run one wait-time decay tick
  stats                                 queue statistics
  quit"""


class ConsoleSession:
    """Operator console over a seeded, in-memory callback queue."""

    AGENT_ID = "current-agent"
    AGENT_NAME = "John Smith"

    def __init__(self) -> None:
        clock = SystemClock()
        self.sink = CollectingNotificationSink()
        self.service = CallbackQueueService(
            InMemoryCallbackStore(build_demo_callbacks(clock.now())),
            clock=clock,
            sink=self.sink,
            agent_directory=InMemoryAgentDirectory(),
        )
        self._loop = asyncio.new_event_loop()
        self._await(self.service.load())
        self._ids: dict[str, str] = {}

    # Pre-scripted scenarios for --scenario flag
    SCENARIOS: dict[str, list[str]] = {
        "priority": [
            "create 'Grace Hopper' '+1 555 010 0001' normal 'Invoice question'",
            "create 'Alan Turing' '+1 555 010 0002' urgent 'Service outage'",
            "create 'Ada Lovelace' '+1 555 010 0003' high 'Upgrade request'",
            "list",
            "stats",
        ],
        "retry": [
            "create 'Linus Pauling' '+1 555 010 0004' high 'Missed delivery'",
            "retry $1",
            "retry $1",
            "retry $1",
            "fail $1 'No answer'",
            "retry $1",
            "show $1",
        ],
        "handoff": [
            "notify cb-1",
            "accept cb-1",
            "reject cb-1 'Currently unavailable'",
            "list",
            "accept cb-1",
            "start cb-1",
            "complete cb-1 'Refund issued, customer satisfied'",
            "accept cb-1",
            "stats",
        ],
    }

    def operator_say(self, text: str) -> None:
        print(f"{GREEN}{BOLD}[Queue]{RESET} {GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted scenario for demo purposes."""
        steps = self.SCENARIOS.get(scenario)
        if not steps:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        self._banner(f"Scenario: {scenario}")
        for step in steps:
            print(f"\n{BLUE}[Operator] {RESET}{step}")
            self._process_input(step)

        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  Scenario '{scenario}' complete.{RESET}")
        print(f"{DIM}  Events: {' | '.join(self.sink.titles())}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        self._loop.close()

    def run(self) -> None:
        self._banner("Console Demo - type 'help' for commands, 'quit' to exit")
        try:
            while True:
                user_input = input(f"\n{BLUE}[Operator] {RESET}").strip()
                if not user_input:
                    continue
                if user_input.lower() in ("quit", "exit", "q"):
                    print(f"\n{DIM}Session ended.{RESET}")
                    return
                self._process_input(user_input)
        finally:
            self._loop.close()

    def _banner(self, subtitle: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  CALLBACK QUEUE - {subtitle}{RESET}")
        print(f"{BOLD}  Queue: {settings.queue_name}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    def _await(self, coro: Awaitable[Any]) -> Any:
        return self._loop.run_until_complete(coro)

    def _resolve(self, ref: str) -> str:
        """Map $1, $2 ... to ids created earlier in this session."""
        return self._ids.get(ref, ref)

    def _process_input(self, text: str) -> None:
        try:
            parts = shlex.split(text)
        except ValueError as exc:
            self.operator_say(f"Could not parse command: {exc}")
            return
        command, args = parts[0].lower(), [self._resolve(a) for a in parts[1:]]
        self.sink.clear()

        try:
            self._dispatch(command, args)
        except CallbackQueueError as exc:
            print(f"{RED}  [{exc.code}] {exc}{RESET}")
        except (IndexError, ValueError):
            print(f"{YELLOW}  Bad arguments for '{command}'.{RESET}\n{HELP}")

        for event in self.sink.events:
            self.system_log(f"{event.level.value.upper()}: {event.title} - {event.message}")

    def _dispatch(self, command: str, args: list[str]) -> None:
        svc = self.service
        rest = " ".join(args[1:]) or None

        if command == "help":
            print(HELP)
        elif command == "list":
            self._print_queue()
        elif command == "show":
            self._print_callback(svc.get_callback(args[0]), with_notes=True)
        elif command == "stats":
            stats = svc.get_stats()
            for key, value in stats.model_dump().items():
                self.system_log(f"{key}: {value}")
        elif command == "tick":
            changed = self._await(svc.decay_wait_times())
            self.operator_say(f"Wait estimates decayed on {changed} callbacks.")
        elif command == "create":
            cb = self._await(svc.create_callback(
                customer_name=args[0],
                customer_phone=args[1],
                priority=CallbackPriority(args[2]),
                reason=" ".join(args[3:]),
            ))
            self._ids[f"${len(self._ids) + 1}"] = cb.id
            self._print_callback(cb)
        else:
            cb = self._run_command(command, args[0], rest)
            if cb is None:
                print(f"{YELLOW}  Unknown command '{command}'.{RESET}\n{HELP}")
                return
            self._print_callback(cb)

    def _run_command(self, command: str, callback_id: str, rest: Optional[str]) -> Optional[CallbackRequest]:
        svc = self.service
        commands = {
            "notify": lambda: svc.notify_next_agent(callback_id),
            "accept": lambda: svc.accept_callback(callback_id, self.AGENT_ID, self.AGENT_NAME),
            "reject": lambda: svc.reject_callback(callback_id, self.AGENT_NAME, rest),
            "start": lambda: svc.start_callback(callback_id),
            "complete": lambda: svc.complete_callback(callback_id, rest),
            "retry": lambda: svc.retry_callback(callback_id),
            "fail": lambda: svc.fail_callback(callback_id, rest),
            "cancel": lambda: svc.cancel_callback(callback_id, rest),
            "release": lambda: svc.release_scheduled(callback_id),
        }
        action = commands.get(command)
        if action is None:
            return None
        return self._await(action())

    def _print_queue(self) -> None:
        pending = self.service.get_pending_queue()
        if not pending:
            self.operator_say("The queue is empty.")
        for cb in pending:
            self.operator_say(
                f"#{cb.queue_position} {cb.id} {cb.customer_name} "
                f"[{cb.priority.value}] ~{cb.estimated_wait_time}m - {cb.reason}"
            )
        for cb in self.service.get_scheduled_callbacks():
            self.system_log(f"scheduled {cb.id} {cb.customer_name} at {cb.scheduled_time:%Y-%m-%d %H:%M}")
        for notification in self.service.get_agent_notifications():
            self.system_log(
                f"notification for {notification.agent_id}: {notification.customer_name} "
                f"(expires {notification.expires_at:%H:%M:%S})"
            )

    def _print_callback(self, cb: CallbackRequest, with_notes: bool = False) -> None:
        position = f" #{cb.queue_position}" if cb.queue_position else ""
        agent = f" agent={cb.assigned_agent_name}" if cb.assigned_agent_name else ""
        self.operator_say(
            f"{cb.id} {cb.customer_name} [{cb.priority.value}] {cb.status.value}{position}"
            f" retries={cb.retry_count}/{cb.max_retries}{agent}"
        )
        if with_notes:
            for note in cb.notes:
                self.system_log(f"{note.created_at:%H:%M:%S} {note.type.value:<6} {note.created_by}: {note.content}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline callback queue console")
    parser.add_argument(
        "--scenario",
        choices=sorted(ConsoleSession.SCENARIOS),
        default=None,
        help="Auto-play a pre-scripted scenario instead of interactive mode",
    )
    args = parser.parse_args()

    session = ConsoleSession()
    if args.scenario:
        session.run_scenario(args.scenario)
    else:
        session.run()


if __name__ == "__main__":
    main()
