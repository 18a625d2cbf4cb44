# data_logger.py
import csv
import logging
import os
from datetime import datetime

logger = logging.getLogger(__name__)


class DataLogger:
    """
    Logs blink and alert events to a daily CSV file with timestamps.
    Creates a new log file each day under the log directory.
    """

    HEADER = ["Timestamp", "Event Type", "Details"]

    def __init__(self, log_dir="logs"):
        """
        Initialize the logger and ensure the log directory exists.
        """
        self.log_dir = log_dir
        os.makedirs(self.log_dir, exist_ok=True)
        self.current_date = None
        self.file_path = None

    def _update_log_file(self, when):
        """
        Create or switch to a new log file when the date changes.
        """
        day = when.strftime("%Y-%m-%d")
        if day != self.current_date:
            self.current_date = day
            self.file_path = os.path.join(self.log_dir, f"{day}_events.csv")

            if not os.path.exists(self.file_path):
                with open(self.file_path, mode="w", newline="") as file:
                    writer = csv.writer(file)
                    writer.writerow(self.HEADER)

    def log_event(self, event_type, details="", timestamp=None):
        """
        Log an event, stamped with timestamp (epoch seconds) or the current time.
        """
        when = datetime.now() if timestamp is None else datetime.fromtimestamp(timestamp)
        self._update_log_file(when)
        stamp = when.strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        with open(self.file_path, mode="a", newline="") as file:
            writer = csv.writer(file)
            writer.writerow([stamp, event_type, details])

        logger.debug("%s - %s: %s", stamp, event_type, details)
