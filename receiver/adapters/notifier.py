"""
Notifiers that show a campaign message to the user.
"""
from abc import ABC, abstractmethod
from typing import List, Optional
import shutil
import subprocess

from bittensor.utils.btlogging import logging

from receiver.constants import DEFAULT_NOTIFY_COMMAND, DEFAULT_NOTIFY_TIMEOUT
from receiver.domain.errors import NotifyError


class INotifier(ABC):
    """Interface for displaying a local notification."""
    
    @abstractmethod
    def notify(self, title: str, body: str, image_url: Optional[str] = None) -> None:
        """
        Display a notification.
        
        Args:
            title: Notification title
            body: Notification body text
            image_url: Optional image shown alongside the message
        
        Raises:
            NotifyError: If the notification could not be displayed
        """
        pass


class LoggingNotifier(INotifier):
    """Renders notifications to the receiver log. Never fails."""
    
    def notify(self, title: str, body: str, image_url: Optional[str] = None) -> None:
        logging.success(f"[magenta]Notification:[/magenta] {title} - {body}")
        if image_url:
            logging.info(f"Notification image: {image_url}")


class CommandNotifier(INotifier):
    """
    Displays desktop notifications by running an external command.
    
    The command receives the title and body as its last two arguments,
    which matches notify-send.
    """
    
    def __init__(self, command: str = DEFAULT_NOTIFY_COMMAND, timeout: float = DEFAULT_NOTIFY_TIMEOUT):
        self.command = command
        self.timeout = timeout
    
    def _build_args(self, title: str, body: str, image_url: Optional[str]) -> List[str]:
        args = [self.command]
        if image_url and self.command == DEFAULT_NOTIFY_COMMAND:
            args += ["--icon", image_url]
        return args + [title, body]
    
    def notify(self, title: str, body: str, image_url: Optional[str] = None) -> None:
        if shutil.which(self.command) is None:
            raise NotifyError(f"Notification command not found: {self.command}")
        try:
            result = subprocess.run(
                self._build_args(title, body, image_url),
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (OSError, ValueError, subprocess.TimeoutExpired) as e:
            raise NotifyError(f"Notification command failed: {e}") from e
        if result.returncode != 0:
            raise NotifyError(
                f"Notification command exited with {result.returncode}: {result.stderr.strip()}"
            )


def create_notifier(name: str) -> INotifier:
    """
    Create a notifier by backend name.
    
    Args:
        name: "log" or "command"
    
    Returns:
        Notifier instance
    
    Raises:
        ValueError: If the name is unknown
    """
    if name == "log":
        return LoggingNotifier()
    if name == "command":
        return CommandNotifier()
    raise ValueError(f"Unknown notifier: {name}")
