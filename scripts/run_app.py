#!/usr/bin/env python
"""
Run the Streamlit statement editor and reports.

Usage:
    python scripts/run_app.py [--data-dir ./data]
"""
import argparse
import os
import subprocess
import sys
from pathlib import Path


def main():
    parser = argparse.ArgumentParser(description="Run the Statement Tool UI")
    parser.add_argument('--data-dir', type=Path, help="Directory holding the JSON collections")
    args = parser.parse_args()

    project_root = Path(__file__).parent.parent
    ui_path = project_root / 'src' / 'statement_tool' / 'ui' / 'app_streamlit.py'
    if not ui_path.exists():
        print(f"ERROR: UI module not found at {ui_path}")
        sys.exit(1)

    env = os.environ.copy()
    if args.data_dir:
        env['STATEMENT_TOOL_DATA_DIR'] = str(args.data_dir.resolve())

    cmd = [sys.executable, '-m', 'streamlit', 'run', str(ui_path)]
    print(f"Starting Streamlit: {' '.join(cmd)}")
    try:
        subprocess.run(cmd, cwd=str(project_root), env=env)
    except KeyboardInterrupt:
        print("\nApplication stopped.")


if __name__ == "__main__":
    main()
