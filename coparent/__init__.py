# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Co-parent scheduling service."""
