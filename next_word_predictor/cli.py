"""
cli.py - interactive next-word prediction console
Features:
- Predictions for every line typed, shown in a Rich table
- Every line is also added to the session history (retrain + save at the limit)
- First run pre-trains from a corpus file when no saved model exists
- Uses Rich for tables and formatting, Log for the session trail
"""

import argparse
import os
import sys
from typing import List, Optional, Tuple

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.prompt import Prompt
from rich import box

from next_word_predictor.core.session import PredictorSession
from next_word_predictor.utils.config_manager import Config
from next_word_predictor.utils.logger_utils import Log, LogObserver
from next_word_predictor.utils.model_store import ModelStore

# initialise console for rich output
console = Console()

EXIT_WORDS = ("exit", "/quit", "/exit", "/q")
HELP = "Commands: /retrain /stats /clear /help, 'exit' to leave"


def read_corpus(path: str) -> List[str]:
    """Non-empty lines of a UTF-8 text file."""
    with open(path, "r", encoding="utf8") as f:
        return [ln.strip() for ln in f if ln.strip()]


class CLI:
    """Command-line loop: read a line, predict, show, accumulate."""

    def __init__(self, cfg: Config, log: Optional[Log] = None):
        self.cfg = cfg
        self.log = log or Log(echo=False)
        self.num_predictions = int(cfg.get("num_predictions", 5))
        self.running = True

        kwargs = cfg.session_kwargs()
        samples = None
        if not ModelStore(kwargs["model_path"]).exists():
            samples = self._load_samples(cfg.get("corpus_path"))
        with self.log.time_block("session start"):
            self.session = PredictorSession(
                sample_texts=samples, observer=LogObserver(self.log), **kwargs
            )
        if self.session.load_result is not None and not self.session.load_result.ok:
            console.print(
                f"[yellow]Saved model unusable ({self.session.load_result.message}); started fresh.[/yellow]"
            )

    def _load_samples(self, path: Optional[str]) -> Optional[List[str]]:
        if not path or not os.path.exists(path):
            return None
        try:
            lines = read_corpus(path)
        except (OSError, UnicodeDecodeError) as e:
            console.print(f"[red]Corpus load failed:[/red] {e}")
            return None
        console.print(f"[dim]Pre-training on {len(lines)} lines from {path}[/dim]")
        return lines

    def run(self):
        console.rule("[bold magenta]Next Word Predictor[/bold magenta]")
        console.print(f"[cyan]{HELP}[/cyan]\n")

        while self.running:
            try:
                line = Prompt.ask("[green]Input[/green]", default="", console=console)
            except (EOFError, KeyboardInterrupt):
                self._exit()
                break
            if line.strip().lower() in EXIT_WORDS:
                self._exit()
                break
            if line.startswith("/"):
                self._handle_command(line.strip())
                continue
            self._process_input(line)

    # COMMAND HANDLING -----------------------------------------------------------
    def _handle_command(self, cmd: str):
        if cmd == "/retrain":
            ok = self.session.force_retrain()
            if ok:
                console.print("[green]Model retrained and saved.[/green]")
            else:
                console.print("[red]Retrained in memory, but the save failed.[/red]")
            return

        if cmd == "/stats":
            self._show_stats()
            return

        if cmd == "/clear":
            n = self.session.clear_history()
            console.print(f"[yellow]Cleared {n} history entries.[/yellow]")
            return

        if cmd == "/help":
            console.print(HELP)
            return

        console.print(f"[red]Unknown command:[/red] {cmd}")

    # CORE INPUT PROCESSING ---------------------------------------------------------------
    def _process_input(self, line: str):
        predictions = self.session.predict(line, self.num_predictions)
        if predictions:
            self._display_predictions(predictions)
        else:
            console.print("[dim](no predictions)[/dim]")

        if line.strip():
            result = self.session.accumulate(line)
            if result is not None:
                if result.ok:
                    console.print("[dim]History limit reached: model retrained and saved.[/dim]")
                else:
                    console.print(f"[red]Retrained, but save failed:[/red] {result.message}")

    # DISPLAY -------------------------------------------------------------------------------
    def _display_predictions(self, predictions: List[Tuple[str, float]]):
        table = Table(title="Predictions", box=box.SIMPLE, show_edge=False)
        table.add_column("#", justify="right", style="cyan")
        table.add_column("Word", style="bold")
        table.add_column("Probability", justify="right", style="magenta")
        for i, (w, p) in enumerate(predictions, 1):
            table.add_row(str(i), w, f"{p:.4f}")
        console.print(table)

    def _show_stats(self):
        st = self.session.stats()
        body = "\n".join(f"{k:14} {v}" for k, v in st.items())
        console.print(Panel(body, title="Model", border_style="cyan"))

    # EXIT ------------------------------------------------------------------------
    def _exit(self):
        console.rule("[red]Exiting[/red]")
        self.running = False


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="next-word-predictor", description="Interactive n-gram next-word prediction")
    p.add_argument("--config", default="config.json", help="JSON config file (created with defaults if missing)")
    p.add_argument("--model", help="model file path (overrides config)")
    p.add_argument("--corpus", help="text file used to pre-train a new model (overrides config)")
    p.add_argument("--order", type=int, help="n-gram order for a new model (overrides config)")
    p.add_argument("-k", "--num-predictions", type=int, help="predictions per input (overrides config)")
    return p


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    cfg = Config(args.config)
    overrides = {
        "model_path": args.model,
        "corpus_path": args.corpus,
        "order": args.order,
        "num_predictions": args.num_predictions,
    }
    for k, v in overrides.items():
        if v is not None:
            cfg.data[k] = v
    try:
        CLI(cfg).run()
    except ValueError as e:
        console.print(f"[red]Bad configuration:[/red] {e}")
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
