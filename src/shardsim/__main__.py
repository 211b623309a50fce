"""Allow ``python -m shardsim``."""

from shardsim.cli.app import app

app(prog_name="shardsim")
