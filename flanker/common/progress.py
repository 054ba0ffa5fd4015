# License: GNU Affero General Public License v3 or later
# A copy of GNU AGPL v3 should have been included in this software package in LICENSE.txt.

""" Progress reporting sinks.

    A sink is anything with a progress() method accepting a line of text.
    Sinks are purely informational, nothing may depend on them being present.
"""

import logging
import sys
from typing import IO, Optional

from flanker.custom_typing import ProgressSink


class TraceProgress:  # pylint: disable=too-few-public-methods
    """ Writes each progress message as a line to a file handle, stderr by
        default.
    """
    def __init__(self, handle: Optional[IO[str]] = None) -> None:
        self.handle = handle or sys.stderr

    def progress(self, message: str) -> None:
        """ Writes the message to the handle """
        print(message, file=self.handle)


class LoggingProgress:  # pylint: disable=too-few-public-methods
    """ Sends each progress message to the logging system """
    def __init__(self, level: int = logging.INFO) -> None:
        self.level = level

    def progress(self, message: str) -> None:
        """ Logs the message at the configured level """
        logging.log(self.level, message)


def report(sink: Optional[ProgressSink], message: str) -> None:
    """ Passes the message on to the sink, if there is one """
    if sink is not None:
        sink.progress(message)
