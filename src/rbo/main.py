from __future__ import annotations

import logging

from rbo.application.container import build_container
from rbo.config import get_app_paths, load_settings
from rbo.logging_config import setup_logging


def main() -> None:
    paths = get_app_paths()
    setup_logging(paths.logs_dir, level=logging.INFO)

    settings = load_settings()
    container = build_container(settings, paths.db_path)

    # tkinter only when a window is actually opened
    from rbo.ui.app import App

    app = App(container, db_path=str(paths.db_path), logs_dir=str(paths.logs_dir))
    app.mainloop()


if __name__ == "__main__":
    main()
