"""
Pytest configuration: show receiver log output while tests run.
"""
import logging
import sys

from bittensor.utils.btlogging import logging as bt_logging

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stdout
)

# Receiver modules log through bittensor logging
bt_logging.enable_info()
