from __future__ import annotations

import os
import re
from threading import Event, Thread
from typing import TextIO

from .events import EventLog

ERROR_PATTERN = re.compile(r"error|fail|panic|critical", re.IGNORECASE)


def is_watchable(path: str | None) -> bool:
    return bool(path) and os.path.isfile(path) and os.access(path, os.R_OK)


class LogWatcher:
    """Follows one service's log file and reports lines that look like errors.

    Starts at the current end of the file, so only lines appended after
    startup are scanned. A truncated file is re-read from the start. A
    rotated file (new inode at the same path) is read to its end, then the
    new file is followed from its start. If the path can
    no longer be read the watcher ends quietly; it is not restarted.
    """

    def __init__(self, service: str, path: str, events: EventLog, poll_interval_s: float = 0.5):
        self.service = service
        self.path = path
        self.events = events
        self.poll_interval_s = max(0.01, float(poll_interval_s))
        self.matches = 0
        self._stop = Event()
        self._thr: Thread | None = None

    def start(self) -> None:
        if self._thr and self._thr.is_alive():
            return
        self._stop.clear()
        self._thr = Thread(target=self._loop, name=f"logwatch-{self.service}", daemon=True)
        self._thr.start()

    def stop(self) -> None:
        self._stop.set()

    def join(self, timeout: float | None = None) -> None:
        if self._thr:
            self._thr.join(timeout)

    def is_alive(self) -> bool:
        return bool(self._thr and self._thr.is_alive())

    def scan_line(self, line: str) -> bool:
        line = line.rstrip("\r\n")
        if not ERROR_PATTERN.search(line):
            return False
        self.matches += 1
        self.events.incident(f"{self.service} log error: {line}")
        return True

    def _loop(self) -> None:
        try:
            f = open(self.path, "r", encoding="utf-8", errors="replace")
        except OSError:
            return
        try:
            f.seek(0, os.SEEK_END)
            inode = os.fstat(f.fileno()).st_ino
            pending = ""
            while not self._stop.is_set():
                chunk = f.readline()
                if chunk:
                    pending += chunk
                    # Only whole lines are scanned; a partial write waits for its newline.
                    if pending.endswith("\n"):
                        self.scan_line(pending)
                        pending = ""
                    continue

                if self._stop.wait(self.poll_interval_s):
                    break
                try:
                    st = os.stat(self.path)
                except OSError:
                    return
                if st.st_ino != inode:
                    # Rotated: finish the old file before following the new one.
                    for rest in iter(f.readline, ""):
                        pending += rest
                        if pending.endswith("\n"):
                            self.scan_line(pending)
                            pending = ""
                    if pending:
                        self.scan_line(pending)
                    f.close()
                    try:
                        f = open(self.path, "r", encoding="utf-8", errors="replace")
                    except OSError:
                        return
                    inode = os.fstat(f.fileno()).st_ino
                    pending = ""
                elif st.st_size < f.tell():
                    f.seek(0)
                    pending = ""
        finally:
            f.close()
