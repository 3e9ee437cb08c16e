# tts.py
# Speech sink for navigation announcements.
# Each utterance runs pyttsx3 in a child process so a newer announcement
# can cut off the one still being spoken.

import logging
import queue
import subprocess
import sys
import threading
from typing import Optional

logger = logging.getLogger(__name__)

_STOP = None


def _speech_script(text: str, rate: int) -> str:
    return (
        "import pyttsx3\n"
        "engine = pyttsx3.init()\n"
        f"engine.setProperty('rate', {int(rate)})\n"
        f"engine.say({text!r})\n"
        "engine.runAndWait()"
    )


class SpeechAnnouncer:
    """
    At most one utterance at a time: speak() cancels the unfinished
    utterance and drops anything still queued.

    Args:
        rate:      pyttsx3 speech rate (words per minute).
        autostart: Start the worker thread immediately.
    """

    def __init__(self, rate: int = 150, autostart: bool = True) -> None:
        self.rate = rate
        self._queue: "queue.Queue[Optional[str]]" = queue.Queue()
        self._lock = threading.Lock()
        self._current: Optional[subprocess.Popen] = None
        self._thread = threading.Thread(target=self._worker, daemon=True)
        if autostart:
            self._thread.start()

    def speak(self, text: str, priority: bool = False) -> None:
        text = (text or "").strip()
        if not text:
            return
        self._cancel_pending()
        logger.debug(f"Speaking{' (priority)' if priority else ''}: {text}")
        self._queue.put(text)

    def wait_idle(self) -> None:
        """Block until everything queued has been spoken."""
        if self._thread.is_alive():
            self._queue.join()

    def close(self, timeout: float = 5.0) -> None:
        """Stop speaking and shut the worker down."""
        self._cancel_pending()
        self._queue.put(_STOP)
        if self._thread.is_alive():
            self._thread.join(timeout=timeout)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _cancel_pending(self) -> None:
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                break
            self._queue.task_done()
        with self._lock:
            proc = self._current
        if proc is not None and proc.poll() is None:
            proc.terminate()

    def _worker(self) -> None:
        while True:
            text = self._queue.get()
            try:
                if text is _STOP:
                    break
                self._say(text)
            except OSError as e:
                logger.error(f"TTS error: {e}")
            finally:
                self._queue.task_done()

    def _say(self, text: str) -> None:
        proc = subprocess.Popen([sys.executable, "-c", _speech_script(text, self.rate)])
        with self._lock:
            self._current = proc
        try:
            proc.wait()
        finally:
            with self._lock:
                self._current = None
