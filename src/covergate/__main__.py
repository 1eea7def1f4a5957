"""Allow ``python -m covergate``."""

from covergate.cli import cli

if __name__ == "__main__":
    cli()
