#!/usr/bin/env python
"""
Run the statement API with uvicorn.

Usage:
    python scripts/run_api.py [--port 8000] [--data-dir ./data] [--no-reload]
"""
import argparse
import os
import subprocess
import sys
from pathlib import Path


def main():
    parser = argparse.ArgumentParser(description="Run the Statement Tool API")
    parser.add_argument('--host', default='0.0.0.0')
    parser.add_argument('--port', type=int, default=8000)
    parser.add_argument('--data-dir', type=Path, help="Directory holding the JSON collections")
    parser.add_argument('--no-reload', action='store_true')
    args = parser.parse_args()

    project_root = Path(__file__).parent.parent

    # uvicorn imports the app by module path, so src must be importable
    env = os.environ.copy()
    src_path = str(project_root / "src")
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [src_path, env.get("PYTHONPATH")]))
    if args.data_dir:
        env["STATEMENT_TOOL_DATA_DIR"] = str(args.data_dir.resolve())

    cmd = [
        sys.executable, "-m", "uvicorn", "statement_tool.api.main:app",
        "--host", args.host,
        "--port", str(args.port),
    ]
    if not args.no_reload:
        cmd.append("--reload")

    print(f"Starting Statement Tool API on {args.host}:{args.port}...")
    try:
        subprocess.run(cmd, env=env, cwd=str(project_root))
    except KeyboardInterrupt:
        print("\nAPI stopped.")


if __name__ == "__main__":
    main()
