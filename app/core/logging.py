import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # o echo do sqlalchemy fica de fora, barulhento demais
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
