"""
Shared CLI plumbing

run_agent payload/meta handling, the failure envelope, module headers.
"""
import json
import pytest
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from mood_engine.cli import base_parser, run_agent


def _echo(payload, meta):
    return {"ok": True, "emits": {"n": payload["data"]["n"]}, "checks": {}, "meta": meta}


def _boom(payload, meta):
    raise ValueError("boom")


@pytest.fixture
def payload_file(tmp_path):
    path = tmp_path / "payload.json"
    path.write_text(json.dumps({"meta": {"session_id": "s1"}, "data": {"n": 2}}), encoding="utf-8")
    return path


def test_run_agent_writes_result(payload_file, capsys):
    run_agent("demo", "1.0", base_parser("demo"), _echo, ["--payload", str(payload_file), "--explain-verbose"])
    out = json.loads(capsys.readouterr().out)
    assert out["ok"] is True
    assert out["emits"] == {"n": 2}
    assert out["version"] == "demo@1.0"
    assert out["meta"] == {"session_id": "s1", "explain_verbose": True}
    assert out["latency_ms"] >= 0


def test_unset_flags_not_copied_into_meta(payload_file, capsys):
    run_agent("demo", "1.0", base_parser("demo"), _echo, ["--payload", str(payload_file)])
    out = json.loads(capsys.readouterr().out)
    assert out["meta"] == {"session_id": "s1"}


def test_run_agent_failure_envelope(payload_file, capsys):
    with pytest.raises(SystemExit) as exc:
        run_agent("demo", "1.0", base_parser("demo"), _boom, ["--payload", str(payload_file)])
    assert exc.value.code == 1
    captured = capsys.readouterr()
    assert json.loads(captured.out) == {"ok": False, "error": "boom"}
    assert "demo error: boom" in captured.err


@pytest.mark.parametrize("module", sorted((ROOT / "mood_engine").rglob("*.py")), ids=lambda p: str(p.relative_to(ROOT)))
def test_module_header(module):
    first = module.read_text(encoding="utf-8").splitlines()[0]
    assert first == "#!/usr/bin/env python3"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
