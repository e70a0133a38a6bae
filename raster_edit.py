from pathlib import Path
from typing import List, Optional
import argparse
import logging
import sys

from PyQt5.QtWidgets import QApplication

from RE_Libs.editor_config import EditorConfig
from RE_Libs.ImageEditingLib.image_editor_window import EditorWindow


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Raster Edit image editor")
    parser.add_argument("image", nargs="?", help="Image to open on startup")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: WARNING)",
    )
    parser.add_argument(
        "--edge-policy",
        default="no_op",
        choices=["no_op", "zero_pad", "extend"],
        help="Edge policy for filters applied from the menus",
    )
    return parser.parse_args(argv)


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = EditorConfig(default_edge_policy=args.edge_policy)
    app = QApplication(sys.argv[:1])
    window = EditorWindow(Path(args.image) if args.image else None, config=config)
    window.show()
    sys.exit(app.exec_())


if __name__ == "__main__":
    main()
