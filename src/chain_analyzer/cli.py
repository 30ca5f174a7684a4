"""CLI entry point using Typer."""

import logging
import sys
from pathlib import Path

import typer

from chain_analyzer.exceptions import CertificateLoadError
from chain_analyzer.expiration import expiration_thresholds
from chain_analyzer.loader import load_certificates_from_file
from chain_analyzer.models import ServiceState
from chain_analyzer.reporter import (
    analyze_chain,
    generate_json_report,
    generate_text_report,
    set_color_output,
)

app = typer.Typer(help="X.509 Certificate Chain Analyzer CLI Tool")

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s: %(message)s",
)

DEFAULT_AGE_WARNING_DAYS = 30
DEFAULT_AGE_CRITICAL_DAYS = 15

EXIT_CODES = {
    ServiceState.OK: 0,
    ServiceState.WARNING: 1,
    ServiceState.CRITICAL: 2,
    ServiceState.UNKNOWN: 3,
}


@app.callback()
def callback() -> None:
    """X.509 Certificate Chain Analyzer."""


@app.command()
def inspect(
    file: Path = typer.Argument(..., help="Certificate chain file (PEM bundle, leaf first, or single DER certificate)"),
    age_warning: int = typer.Option(
        DEFAULT_AGE_WARNING_DAYS, "--warning", "-w", help="WARNING threshold in days before expiration"
    ),
    age_critical: int = typer.Option(
        DEFAULT_AGE_CRITICAL_DAYS, "--critical", "-c", help="CRITICAL threshold in days before expiration"
    ),
    ignore_expiration: bool = typer.Option(
        False, "--ignore-expiration", help="Mark expired/expiring certificates as ignored instead of failing"
    ),
    eval_root: bool = typer.Option(
        False, "--eval-root", help="Also flag weak signature algorithms on root certificates"
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="JSON output"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    color: bool = typer.Option(True, "--color/--no-color", help="Enable/disable colored output"),
):
    """
    Analyze a certificate chain: position, expiration and signature algorithm of each certificate.
    """
    logger = logging.getLogger(__name__)

    set_color_output(color)

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logging.getLogger("chain_analyzer").setLevel(logging.DEBUG)

    if age_critical > age_warning:
        logger.warning(
            f"CRITICAL threshold ({age_critical}d) is greater than WARNING threshold ({age_warning}d)"
        )

    try:
        chain = load_certificates_from_file(file)
    except CertificateLoadError as e:
        logger.error(f"Failed to load certificates: {e}")
        sys.exit(EXIT_CODES[ServiceState.UNKNOWN])

    critical_time, warning_time = expiration_thresholds(age_critical, age_warning)

    report = analyze_chain(
        chain,
        age_critical=critical_time,
        age_warning=warning_time,
        ignore_expiration=ignore_expiration,
        eval_root=eval_root,
        source=str(file),
    )

    if json_output:
        print(generate_json_report(report))
    else:
        print(generate_text_report(report))

    # Exit with appropriate code
    sys.exit(EXIT_CODES.get(report.state, EXIT_CODES[ServiceState.UNKNOWN]))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
