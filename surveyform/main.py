from __future__ import annotations

import sys
from pathlib import Path

import streamlit as st
from streamlit.web import cli as streamlit_cli

from surveyform.UI import run_app


def main() -> None:
    """Console entry point: serve this file with ``streamlit run``."""

    sys.argv = ["streamlit", "run", str(Path(__file__).resolve()), *sys.argv[1:]]
    sys.exit(streamlit_cli.main())


if __name__ == "__main__":
    if st.runtime.exists():
        run_app()
    else:
        main()
