import os
from pathlib import Path
import subprocess
import sys

REPO_ROOT = Path(__file__).resolve().parents[1]
SMOKE_CORPUS = REPO_ROOT / "reference_docs" / "smoke_corpus"


def _env(tmp_path: Path) -> dict[str, str]:
    env = os.environ.copy()
    env["PYTHONPATH"] = str(REPO_ROOT / "src")
    env["MRS_DATA_DIR"] = str(tmp_path / "data")
    env["MRS_UI_CONFIG_PATH"] = str(tmp_path / "config.json")
    return env


def _run(args: list[str], env: dict[str, str]) -> subprocess.CompletedProcess:
    result = subprocess.run(
        [sys.executable, *args],
        cwd=REPO_ROOT,
        env=env,
        capture_output=True,
        text=True,
    )
    assert result.returncode == 0, result.stderr
    return result


def test_build_then_query(tmp_path: Path) -> None:
    env = _env(tmp_path)
    index_path = tmp_path / "data" / "rag-index.json"
    build = _run(
        [
            "scripts/build_index.py",
            "--path",
            str(SMOKE_CORPUS),
            "--output",
            str(index_path),
            "--capsule",
            "--capsule-path",
            str(tmp_path / "data" / "rag-capsule.png"),
        ],
        env,
    )
    assert "Index summary:" in build.stdout
    assert '"event": "build_index"' in build.stderr
    assert index_path.exists()

    query = _run(
        ["scripts/query.py", "nvidia driver", "--index-path", str(index_path)], env
    )
    assert "#1 logs/2025/01/0" in query.stdout
    assert "cake" not in query.stdout.lower()

    verify = _run(
        ["scripts/maintenance.py", "--verify", "--index-path", str(index_path)], env
    )
    assert "Index verified." in verify.stdout


def test_query_rebuilds_missing_index(tmp_path: Path) -> None:
    env = _env(tmp_path)
    index_path = tmp_path / "data" / "rag-index.json"
    result = _run(
        [
            "scripts/query.py",
            "sponge cake",
            "--index-path",
            str(index_path),
            "--corpus",
            str(SMOKE_CORPUS),
        ],
        env,
    )
    assert "Index summary:" in result.stdout
    assert "#1 logs/notes/cake.md" in result.stdout
    assert index_path.exists()
