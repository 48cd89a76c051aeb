# =============================================================================
# src/cli/__main__.py — Package Entry Point
# =============================================================================
#
# Enables running the CLI package itself as a module:
#     python -m src.cli search "return policy"
#
# Delegates to the operator CLI in engine.py.
# =============================================================================

"""Allow ``python -m src.cli`` execution."""

from src.cli.engine import main

main()
