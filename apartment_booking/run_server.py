import logging

from waitress import serve

from . import config
from .app import app, init_controller

logger = logging.getLogger(__name__)


def main():
    init_controller()
    logger.info("Starte Ferienwohnungs-Buchungsserver mit Waitress...")
    logger.info(f"Programm läuft auf http://{config.HOST}:{config.PORT}")
    serve(app, host=config.HOST, port=config.PORT, threads=config.THREADS)


if __name__ == '__main__':
    main()
