import logging


class ColourFormatter(logging.Formatter):
    """Форматтер консоли: цвет строки зависит от уровня записи."""

    grey = "\x1b[37;20m"
    yellow = "\x1b[33;20m"
    red = "\x1b[31;20m"
    bold_red = "\x1b[31;1m"
    dark_grey = "\x1b[30;1m"
    reset = "\x1b[0m"
    fmt = "[%(levelname)s] %(asctime)s %(name)s - %(message)s"

    FORMATS = {
        logging.DEBUG: dark_grey + fmt + reset,
        logging.INFO: grey + fmt + reset,
        logging.WARNING: yellow + fmt + reset,
        logging.ERROR: red + fmt + reset,
        logging.CRITICAL: bold_red + fmt + reset,
    }

    def format(self, record):
        formatter = logging.Formatter(self.FORMATS.get(record.levelno, self.fmt))
        return formatter.format(record)


def setup_logging(level: str = "INFO") -> logging.Logger:
    logger = logging.getLogger("app")
    logger.setLevel(level.upper())

    # uvicorn --reload imports the app twice
    if not any(isinstance(h.formatter, ColourFormatter) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(ColourFormatter())
        logger.addHandler(handler)

    return logger
