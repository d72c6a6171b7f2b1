"""
Script runner: load a JSON statement stream, run one session and write its artifacts.
"""

from __future__ import annotations
import argparse
import sys
from pathlib import Path
from typing import List, Optional

from unitlogic.errors import UnitLogicError
from unitlogic.io.statement_loader import StatementLoader
from unitlogic.runlog.events import EventLog
from unitlogic.session.config import SessionConfig, SessionReport
from unitlogic.session.session import Session


class ScriptRunner:
	"""
	Runs one script under a SessionConfig and writes events.jsonl, manifest.json and summary.json.
	"""

	def __init__(self, out_root: Path, config: SessionConfig) -> None:
		self.out_root = Path(out_root)
		self.config = config

	def run(self, script: Path) -> SessionReport:
		script = Path(script)
		raw = script.read_bytes()
		statements = StatementLoader.load(script)
		session = Session(self.config)
		report = session.run(statements)
		manifest = EventLog.build_manifest(
			script=script.name,
			script_sha256=EventLog.sha256_hex(raw),
			config=self.config,
			report=report,
		)
		EventLog.write(self.out_root / script.stem, manifest, report)
		return report


def build_parser() -> argparse.ArgumentParser:
	p = argparse.ArgumentParser(description="Run a unitlogic statement script")
	p.add_argument("--script", type=str, required=True)
	p.add_argument("--out", type=str, default="runs")
	p.add_argument("--prelude", action="store_true")
	p.add_argument("--rel-tol", type=float, default=1e-9)
	p.add_argument("--abs-tol", type=float, default=0.0)
	p.add_argument("--abort-on-failed-check", action="store_true")
	p.add_argument("--verbose", action="store_true")
	return p


def main(argv: Optional[List[str]] = None) -> int:
	"""
	CLI entry point. Exit status is 0 when the session ran to the end with no
	errors and no failed checks, 1 otherwise, 2 when the script cannot be loaded.
	"""
	args = build_parser().parse_args(argv)
	config = SessionConfig(
		rel_tol=float(args.rel_tol),
		abs_tol=float(args.abs_tol),
		abort_on_failed_check=bool(args.abort_on_failed_check),
		prelude=bool(args.prelude),
		verbose=bool(args.verbose),
	)
	runner = ScriptRunner(out_root=Path(args.out).resolve(), config=config)
	try:
		report = runner.run(Path(args.script))
	except (UnitLogicError, OSError, ValueError) as exc:
		print(f"run_script: {exc}", file=sys.stderr)
		return 2
	s = report.summary()
	print(
		f"[RUN] statements={s['statements_run']} checks={s['checks']} failed={s['checks_failed']} "
		f"finds={s['finds']} errors={s['errors']} halted={s['halted']}"
	)
	return 0 if report.ok and not report.halted else 1


if __name__ == "__main__":
	sys.exit(main())
