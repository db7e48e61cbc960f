import logging
from ccmp.infrastructure.logging import LOG_FILENAME, setup_logging

def test_setup_logging_writes_to_file(tmp_path):
    root = logging.getLogger()
    before = list(root.handlers)
    try:
        logger = setup_logging(tmp_path / "logs", debug=True)
        logger.debug("hello from test")
        # Second call swaps the handler instead of stacking another one
        setup_logging(tmp_path / "logs2")
        added = [h for h in root.handlers if h not in before]
        assert len(added) == 1
        for handler in added:
            handler.flush()
        assert "hello from test" in (tmp_path / "logs" / LOG_FILENAME).read_text()
        assert root.level == logging.INFO
    finally:
        for handler in [h for h in root.handlers if h not in before]:
            root.removeHandler(handler)
            handler.close()
