from __future__ import annotations

import logging
from collections.abc import Callable

import typer

from .audio.speech import Announcer, NullAnnouncer, build_announcer
from .calculator import evaluate, format_result
from .config import Settings, get_settings
from .errors import CalculationError, PersistenceError, SourceFileError
from .handlers.dispatcher import CommandDispatcher
from .handlers.teaching import (
    TeachingController,
    TeachingStep,
    export_csv,
    export_markdown,
    import_csv,
    teach_from_file,
)
from .logging import configure_logging
from .matching.matcher import Matcher
from .metrics import lookup_misses_total, lookup_ms, lookups_total
from .state.knowledge import KnowledgeBase
from .state.store import KnowledgeStore

log = logging.getLogger(__name__)

ReadLine = Callable[[str], str]

COMMAND_HELP = [
    ("teaching mode", "Teach me manually"),
    ("teach_file <filename>", "Teach from file (key=value)"),
    ("show", "Show learned data"),
    ("reset", "Forget everything"),
    ("export_csv <file.csv>", "Export to CSV"),
    ("import_csv <file.csv>", "Import from CSV"),
    ("export_md <file.md>", "Export to Markdown"),
    ("help", "Show this list"),
    ("exit", "Exit the assistant"),
]


def print_facts(kb: KnowledgeBase) -> None:
    typer.secho("\n— Current Knowledge —", fg=typer.colors.GREEN, bold=True)
    if not kb.facts:
        typer.echo("(nothing learned yet)")
    for key, value in kb.facts.items():
        typer.echo(
            f"{typer.style(key, fg=typer.colors.YELLOW, bold=True)} ➞ "
            f"{typer.style(value, fg=typer.colors.CYAN)}"
        )


class Session:
    """Interactive command loop around one knowledge base.

    The session owns ``kb`` and hands it to every command explicitly. Lines
    that are not commands are tried as arithmetic first and then looked up
    with the matcher.
    """

    def __init__(
        self,
        store: KnowledgeStore,
        kb: KnowledgeBase,
        *,
        matcher: Matcher | None = None,
        announcer: Announcer | None = None,
        read_line: ReadLine = input,
        confirm_reset: bool = True,
        prompt: str = "> ",
    ) -> None:
        self.store = store
        self.kb = kb
        self.matcher = matcher or Matcher()
        self.announcer = announcer or NullAnnouncer()
        self.read_line = read_line
        self.confirm_reset = confirm_reset
        self.prompt = prompt
        self.teaching = TeachingController(store, kb)

        self.dispatcher = CommandDispatcher()
        self.dispatcher.register("teaching mode", self._teaching_mode)
        self.dispatcher.register("show", lambda _: print_facts(self.kb))
        self.dispatcher.register("reset", self._reset)
        self.dispatcher.register("help", lambda _: self.print_help())
        self.dispatcher.register("teach_file", self._teach_file, takes_argument=True)
        self.dispatcher.register("export_csv", self._export_csv, takes_argument=True)
        self.dispatcher.register("import_csv", self._import_csv, takes_argument=True)
        self.dispatcher.register("export_md", self._export_md, takes_argument=True)

    # Lifecycle -----------------------------------------------------------------

    def greet(self) -> None:
        if self.kb.identity:
            typer.echo(
                f"{typer.style('👋 Welcome back,', fg=typer.colors.GREEN)} "
                f"{typer.style(self.kb.identity, fg=typer.colors.CYAN, bold=True)}"
            )
            return
        typer.secho("Hello! What's your name?", fg=typer.colors.YELLOW)
        try:
            name = self.read_line("").strip()
        except KeyboardInterrupt:
            typer.echo()
            return
        except EOFError:
            return
        if name:
            try:
                self.store.set_identity(self.kb, name)
            except PersistenceError as exc:
                self._report_save_failure(exc)

    def print_help(self) -> None:
        typer.secho("\n✨ Available Commands:", fg=typer.colors.BLUE, bold=True)
        for command, description in COMMAND_HELP:
            styled = typer.style(command, fg=typer.colors.CYAN, underline=True)
            typer.echo(f"  {styled} → {description}")
        typer.echo(f"Plus: enter math like {typer.style('2 + 5 * 3', fg=typer.colors.MAGENTA)}")

    def loop(self) -> None:
        self.greet()
        self.print_help()
        while True:
            try:
                line = self.read_line(self.prompt)
            except KeyboardInterrupt:
                typer.echo()
                continue
            except EOFError:
                break
            try:
                if not self.handle(line):
                    break
            except KeyboardInterrupt:
                # Ctrl-C inside a command cancels that command only.
                typer.echo()
                continue
            except EOFError:
                break
        self.shutdown()

    def shutdown(self) -> None:
        try:
            self.store.save(self.kb)
        except PersistenceError as exc:
            self._report_save_failure(exc)
        typer.secho("👋 Goodbye!", fg=typer.colors.MAGENTA, bold=True)

    # Dispatch ------------------------------------------------------------------

    def handle(self, line: str) -> bool:
        """Handle one line of input; returns ``False`` when the session should end."""

        text = line.strip()
        if not text:
            return True
        if text == "exit":
            return False
        log.debug("input", extra={"event_type": "input", "command": text.split(" ", 1)[0]})
        try:
            if not self.dispatcher.dispatch(text):
                self.answer(text)
        except SourceFileError as exc:
            log.warning(
                "source_file_failed",
                extra={
                    "event_type": "source_file_failed",
                    "path": exc.path,
                    "error_category": exc.category.value,
                },
            )
            typer.secho(f"❌ Could not open file: {exc.path}", fg=typer.colors.RED, bold=True)
        except PersistenceError as exc:
            self._report_save_failure(exc)
        return True

    def answer(self, query: str) -> str | None:
        try:
            result = format_result(evaluate(query))
        except CalculationError:
            pass
        else:
            typer.echo(
                f"🧮 {typer.style('Answer:', fg=typer.colors.GREEN, bold=True)} "
                f"{typer.style(result, fg=typer.colors.YELLOW)}"
            )
            return result

        lookups_total.inc()
        with lookup_ms.time():
            value = self.matcher.lookup(query, self.kb.facts)
        if value is None:
            lookup_misses_total.inc()
            typer.secho("🤷 I don't know about that yet.", fg=typer.colors.RED)
            return None
        typer.echo(f"🤖 {typer.style('Response:', fg=typer.colors.CYAN)} {value}")
        self.announcer.announce(value)
        return value

    # Commands ------------------------------------------------------------------

    def _teaching_mode(self, _: str) -> None:
        typer.secho("🧠 Teaching mode. Type 'done' to exit.", fg=typer.colors.GREEN, bold=True)
        self.teaching.start()
        try:
            while self.teaching.active:
                label = "Key: " if self.teaching.pending_key is None else "Value: "
                try:
                    step = self.teaching.feed(self.read_line(label))
                except PersistenceError as exc:
                    self._report_save_failure(exc)
                    continue
                if step is TeachingStep.COMMITTED:
                    key, value = self.teaching.committed[-1]
                    typer.echo(
                        f"✅ Learned: {typer.style(key, fg=typer.colors.MAGENTA)} → "
                        f"{typer.style(value, fg=typer.colors.GREEN)}"
                    )
        except KeyboardInterrupt:
            typer.echo()
        finally:
            self.teaching.finish()
        typer.secho("✅ Exiting teaching mode.", fg=typer.colors.GREEN)

    def _teach_file(self, path: str) -> None:
        applied = teach_from_file(self.store, self.kb, path)
        typer.echo(
            f"{typer.style(str(applied), fg=typer.colors.GREEN, bold=True)} entries loaded from "
            f"{typer.style(path, fg=typer.colors.CYAN)}"
        )

    def _import_csv(self, path: str) -> None:
        applied = import_csv(self.store, self.kb, path)
        styled = typer.style(path, fg=typer.colors.GREEN)
        typer.echo(f"✅ Imported {applied} entries from {styled}")

    def _export_csv(self, path: str) -> None:
        export_csv(self.kb, path)
        typer.echo(f"✅ Exported to {typer.style(path, fg=typer.colors.GREEN)}")

    def _export_md(self, path: str) -> None:
        export_markdown(self.kb, path)
        typer.echo(f"✅ Exported to {typer.style(path, fg=typer.colors.GREEN)}")

    def _reset(self, _: str) -> None:
        if self.confirm_reset:
            reply = self.read_line("Forget everything? [y/N] ").strip().lower()
            if reply not in {"y", "yes"}:
                typer.echo("Reset cancelled.")
                return
        self.store.reset(self.kb)
        typer.secho("⚠️  Memory reset complete.", fg=typer.colors.RED, bold=True)

    def _report_save_failure(self, exc: PersistenceError) -> None:
        typer.secho(f"⚠️  Not saved: {exc}", fg=typer.colors.RED, bold=True, err=True)


def run(settings: Settings | None = None, read_line: ReadLine = input) -> None:
    """Run an interactive session against the configured data file."""

    configure_logging()
    settings = settings or get_settings()

    store = KnowledgeStore(settings.data_file)
    kb, outcome = store.load()
    log.info(
        "assistant starting",
        extra={
            "event_type": "startup",
            "path": settings.data_file,
            "facts_total": len(kb.facts),
            "load_outcome": outcome.value,
        },
    )

    session = Session(
        store,
        kb,
        announcer=build_announcer(settings.speech_enabled, settings.speech_timeout_s),
        read_line=read_line,
        confirm_reset=settings.confirm_reset,
        prompt=settings.prompt,
    )
    session.loop()
