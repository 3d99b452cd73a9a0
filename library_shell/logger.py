import logging
import sys
from pathlib import Path


def setup_logger(log_file_name="library_shell.log"):
    """
    Setups the initial logger.
    param: log_file_name: filename to be used for the logfile.
    return: logger instance created.
    """
    logger = logging.getLogger("LibraryShell")

    # Check if the logger has already been configured
    if not logger.handlers:
        logger.setLevel(logging.DEBUG)

        log_file_path = (
            Path(sys.executable).parent / log_file_name
            if getattr(sys, "frozen", False)
            else Path(__file__).parent / log_file_name
        )

        console_handler = logging.StreamHandler(sys.stdout)
        log_format = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
        console_handler.setFormatter(log_format)
        logger.addHandler(console_handler)

        # Read-only installs (site-packages) can't take a log file next to the code
        try:
            file_handler = logging.FileHandler(log_file_path, encoding="utf-8")
        except OSError as e:
            logger.warning(f"Could not open log file {log_file_path}: {e}")
        else:
            file_handler.setFormatter(log_format)
            logger.addHandler(file_handler)

        # Prevent propagation to avoid duplicate logs
        logger.propagate = False

    return logger
