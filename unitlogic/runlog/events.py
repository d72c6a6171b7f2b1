"""
This module writes a deterministic run manifest and the session's events as
canonical JSONL. Canonical means sorted keys and fixed separators; events carry
logical-time counters (their position in the session log), never wall-clock
time. The manifest hash is the SHA-256 of the canonicalized core (excluding the
hash itself).
"""

from __future__ import annotations
import hashlib
import json
import platform
import sys
from pathlib import Path
from typing import Dict, List, Sequence

import numpy as np
import sympy as sp

from unitlogic.session.config import LogEvent, SessionConfig, SessionReport


class EventLog:
	"""
	Class facade for building manifests, serializing events and writing run artifacts.
	"""

	@staticmethod
	def canonical_json(o: object) -> str:
		"""
		Return a canonical JSON string with sorted keys and fixed separators.
		"""
		return json.dumps(o, sort_keys=True, ensure_ascii=False, separators=(",", ":"), default=str)

	@staticmethod
	def sha256_hex(b: bytes) -> str:
		h = hashlib.sha256()
		h.update(b)
		return h.hexdigest()

	@staticmethod
	def env_block() -> Dict[str, str]:
		"""
		Return a stable environment descriptor with fixed keys and string values.
		"""
		return {
			"python_version": ".".join(str(x) for x in sys.version_info[:3]),
			"python_impl": platform.python_implementation(),
			"numpy_version": np.__version__,
			"sympy_version": sp.__version__,
			"system": platform.system(),
			"machine": platform.machine(),
		}

	@staticmethod
	def to_records(log: Sequence[LogEvent]) -> List[Dict[str, object]]:
		"""Number events by their position in the log."""
		return [{"ts": i, "kind": e.kind, "payload": e.payload} for i, e in enumerate(log)]

	@staticmethod
	def to_jsonl(log: Sequence[LogEvent]) -> str:
		"""
		Serialize events to canonical JSONL (one canonical object per line).
		"""
		return "\n".join(EventLog.canonical_json(r) for r in EventLog.to_records(log))

	@staticmethod
	def validate_event_shape(event: Dict[str, object]) -> bool:
		"""
		Return True iff event has exactly {ts:int, kind:str, payload:dict}.
		"""
		if not isinstance(event, dict) or set(event) != {"ts", "kind", "payload"}:
			return False
		return isinstance(event["ts"], int) and isinstance(event["kind"], str) and isinstance(event["payload"], dict)

	@staticmethod
	def build_manifest(script: str, script_sha256: str, config: SessionConfig, report: SessionReport) -> Dict[str, object]:
		"""
		Build a run manifest dict with a stable manifest hash.
		"""
		core = {
			"script": script,
			"script_sha256": script_sha256,
			"config": {
				"rel_tol": float(config.rel_tol),
				"abs_tol": float(config.abs_tol),
				"abort_on_failed_check": bool(config.abort_on_failed_check),
				"prelude": bool(config.prelude),
				"max_saturation_rounds": int(config.max_saturation_rounds),
			},
			"events": len(report.log),
			"env": EventLog.env_block(),
		}
		out = dict(core)
		out["manifest_hash"] = EventLog.sha256_hex(EventLog.canonical_json(core).encode("utf-8"))
		return out

	@staticmethod
	def write(out_dir: Path, manifest: Dict[str, object], report: SessionReport) -> Dict[str, Path]:
		"""Write events.jsonl, manifest.json and summary.json into out_dir."""
		out_dir = Path(out_dir)
		out_dir.mkdir(parents=True, exist_ok=True)
		paths = {
			"events": out_dir / "events.jsonl",
			"manifest": out_dir / "manifest.json",
			"summary": out_dir / "summary.json",
		}
		paths["events"].write_text(EventLog.to_jsonl(report.log) + "\n", encoding="utf-8")
		paths["manifest"].write_text(json.dumps(manifest, indent=2, sort_keys=True, default=str), encoding="utf-8")
		summary = dict(report.summary())
		summary["checks_detail"] = [c.to_payload() for c in report.checks]
		summary["finds_detail"] = [f.to_payload() for f in report.finds]
		summary["shows_detail"] = [s.to_payload() for s in report.shows]
		summary["errors_detail"] = [e.to_payload() for e in report.errors]
		paths["summary"].write_text(json.dumps(summary, indent=2, sort_keys=True, default=str), encoding="utf-8")
		return paths


__all__ = ["EventLog"]
