import logging
import sys
from typing import Optional, Sequence

from config import load_config
from engine import Engine
from index.codec import StoreError

logger = logging.getLogger(__name__)


def main(argv: Optional[Sequence[str]] = None) -> int:
    cfg = load_config(argv)
    logging.basicConfig(
        level=cfg.log_level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    engine = Engine()
    if cfg.preload_path:
        try:
            engine.tree.load(cfg.preload_path)
        except StoreError as e:
            logger.error("preload failed: %s", e)
            return 1
        logger.info("preloaded %d entries from %s", engine.tree.size(), cfg.preload_path)

    if cfg.input_path:
        try:
            fh = open(cfg.input_path, encoding="utf-8")
        except OSError as e:
            logger.error("cannot open command file %s: %s", cfg.input_path, e)
            return 1
        with fh:
            n = engine.run(fh, sys.stdout)
    else:
        n = engine.run(sys.stdin, sys.stdout)
    logger.info("executed %d commands", n)
    return 0


if __name__ == "__main__":
    sys.exit(main())
