"""Entry point for the terminal board (`kantrack`)."""
import logging
from pathlib import Path

import click

import config
from cli import CLI
from kanban import Kanban
from storage import JsonFileStore


@click.command()
@click.option('--data-dir', type=click.Path(file_okay=False, path_type=Path), default=None,
              help='Directory holding the board, trash and tag files.')
@click.option('--alt-screen/--no-alt-screen', default=config.ALT_SCREEN,
              help="Draw in the terminal's alternate screen buffer.")
@click.option('--log-level', default=config.LOG_LEVEL, show_default=True,
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False))
def main(data_dir, alt_screen, log_level):
    """Interactive kanban board with undo/redo and a trash."""
    logging.basicConfig(level=log_level.upper(), format='%(levelname)s %(name)s: %(message)s')
    store = JsonFileStore(data_dir or config.DATA_DIR)
    kanban = Kanban(store, max_history=config.MAX_HISTORY, trash_max=config.TRASH_MAX_ITEMS)
    CLI(kanban, alt_screen=alt_screen).run()


if __name__ == "__main__":
    main()
