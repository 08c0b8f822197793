"""Allow running fwctl as ``python -m fwctl``."""

from fwctl.cli import app

app(prog_name="fwctl")
