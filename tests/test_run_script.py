import json
from pathlib import Path

from unitlogic.runlog.events import EventLog
from unitlogic.runners.run_script import main

def write_script(tmp_path: Path, name: str, items: list) -> Path:
	path = tmp_path / f"{name}.json"
	path.write_text(json.dumps(items), encoding="utf-8")
	return path

def test_clean_run_writes_artifacts(tmp_path: Path, pizza_script: list, capsys) -> None:
	script = write_script(tmp_path, "pizza", pizza_script)
	out = tmp_path / "runs"
	assert main(["--script", str(script), "--out", str(out)]) == 0
	assert "[RUN]" in capsys.readouterr().out

	run_dir = out / "pizza"
	lines = (run_dir / "events.jsonl").read_text(encoding="utf-8").splitlines()
	events = [json.loads(line) for line in lines]
	assert events
	assert all(EventLog.validate_event_shape(e) for e in events)
	assert [e["ts"] for e in events] == list(range(len(events)))

	manifest = json.loads((run_dir / "manifest.json").read_text(encoding="utf-8"))
	assert manifest["script"] == "pizza.json"
	assert manifest["events"] == len(events)
	core = {k: v for k, v in manifest.items() if k != "manifest_hash"}
	assert manifest["manifest_hash"] == EventLog.sha256_hex(EventLog.canonical_json(core).encode("utf-8"))

	summary = json.loads((run_dir / "summary.json").read_text(encoding="utf-8"))
	assert summary["ok"] is True
	assert summary["checks"] == 5
	assert len(summary["finds_detail"]) == 2
	assert summary["shows_detail"] == []
	assert summary["finds_detail"][0]["quantity"]["precision"] == 1

def test_events_are_deterministic(tmp_path: Path, pizza_script: list) -> None:
	script = write_script(tmp_path, "pizza", pizza_script)
	main(["--script", str(script), "--out", str(tmp_path / "a")])
	main(["--script", str(script), "--out", str(tmp_path / "b")])
	first = (tmp_path / "a" / "pizza" / "events.jsonl").read_bytes()
	second = (tmp_path / "b" / "pizza" / "events.jsonl").read_bytes()
	assert first == second

def test_failed_check_exit_status(tmp_path: Path) -> None:
	items = [
		{"kind": "declare_unit_class", "name": "Length"},
		{"kind": "declare_base_unit", "names": ["Meter", "Meters"], "dimension": "Length"},
		{"kind": "check", "predicate": "1 * Meters = 2 * Meters"},
		{"kind": "check", "predicate": "1 * Meters = 1 * Meters"},
	]
	script = write_script(tmp_path, "bad", items)
	assert main(["--script", str(script), "--out", str(tmp_path / "runs")]) == 1
	summary = json.loads((tmp_path / "runs" / "bad" / "summary.json").read_text(encoding="utf-8"))
	assert summary["checks_failed"] == 1
	assert summary["checks"] == 2

	assert main(["--script", str(script), "--out", str(tmp_path / "aborted"), "--abort-on-failed-check"]) == 1
	summary = json.loads((tmp_path / "aborted" / "bad" / "summary.json").read_text(encoding="utf-8"))
	assert summary["halted"] is True
	assert summary["checks"] == 1

def test_prelude_flag(tmp_path: Path) -> None:
	items = [{"kind": "check", "predicate": "1 * Kilograms = 1000 * Grams"}]
	script = write_script(tmp_path, "prelude", items)
	assert main(["--script", str(script), "--out", str(tmp_path / "runs")]) == 1
	assert main(["--script", str(script), "--out", str(tmp_path / "runs"), "--prelude"]) == 0

def test_unloadable_script(tmp_path: Path) -> None:
	script = write_script(tmp_path, "broken", [{"kind": "declare_galaxy"}])
	assert main(["--script", str(script), "--out", str(tmp_path / "runs")]) == 2
	assert main(["--script", str(tmp_path / "missing.json"), "--out", str(tmp_path / "runs")]) == 2
