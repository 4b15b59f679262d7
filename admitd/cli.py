import sys
from pathlib import Path
from typing import Optional

import typer
from loguru import logger

from admitd.admission.admission_controller import AdmissionController
from admitd.config import load_config
from admitd.exceptions import ConversionError, DecodeError, EncodeError
from admitd.models import AdmissionMode
from admitd.services.admission import run

app = typer.Typer(no_args_is_help=True)


def serve(
    config_file: Optional[Path] = typer.Option(None, help="JSON configuration file"),
    debug: bool = typer.Option(False, help="Enable debug logging"),
):
    overrides = {}
    if config_file is not None:
        overrides["config_file"] = config_file
    if debug:
        overrides["debug"] = True
    run(load_config(**overrides))


def review(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="AdmissionReview JSON file"),
    mode: AdmissionMode = typer.Option(AdmissionMode.VALIDATE, help="Admission policy to apply"),
):
    controller = AdmissionController()
    try:
        content = controller.review(path.read_bytes(), mode)
    except (DecodeError, ConversionError, EncodeError) as e:
        logger.error(f"Failed to review {path}:\n{e}")
        sys.exit(1)

    print(content.decode("utf-8"))


app.command(name="serve", help="Run the admission webhook server.")(serve)
app.command(name="review", help="Evaluate a stored admission request offline.")(review)

if __name__ == "__main__":
    app()
