"""Unified display utilities for consistent error, warning, and info messages.

This module provides standardized functions for displaying messages throughout
mrzip, ensuring consistent styling and user experience.
"""

from typing import Optional, Sequence, Union

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

# Nord color palette
NORD_COLORS = {
    "nord3": "#4c566a",  # Muted gray (dim text)
    "nord4": "#d8dee9",  # Light gray
    "nord7": "#8fbcbb",  # Teal - Info/Setup
    "nord8": "#88c0d0",  # Light blue
    "nord11": "#bf616a",  # Red - Errors
    "nord13": "#ebcb8b",  # Yellow - Warnings/Caution
    "nord14": "#a3be8c",  # Green - Success
    "nord15": "#5e81ac",  # Blue
}


class DisplayUtils:
    """Utilities for consistent message display."""

    def __init__(self, console: Optional[Console] = None):
        """Initialize display utilities.

        Args:
            console: Rich console instance. If None, creates a new one.
        """
        self.console = console or Console()

    def _calculate_panel_width(
        self,
        content: Union[str, Text],
        title: str = "",
        min_width: int = 40,
        max_width: int = 80,
    ) -> int:
        """Fit the panel to its longest line, within bounds."""
        if isinstance(content, Text):
            lines = content.plain.split("\n")
        else:
            lines = content.split("\n")

        max_line_length = max((len(line) for line in lines), default=0)
        title_length = len(title) + 4
        content_width = max(max_line_length, title_length)

        # +6 for panel borders and padding
        return max(min_width, min(content_width + 6, max_width))

    def _panel(self, content: str, title: str, color: str, max_width: int = 80) -> None:
        width = self._calculate_panel_width(content, title, max_width=max_width)
        self.console.print()
        self.console.print(
            Panel(
                content,
                title=f" {title}",
                title_align="left",
                border_style=NORD_COLORS[color],
                padding=(1, 2),
                width=width,
                expand=False,
            )
        )
        self.console.print()

    def error(
        self,
        message: str,
        title: Optional[str] = None,
        context: Optional[str] = None,
        use_panel: bool = True,
    ) -> None:
        """Display an error message.

        Args:
            message: The error message
            title: Optional title for the panel
            context: Optional context information
            use_panel: Whether to use a panel (True) or plain text (False)
        """
        if use_panel:
            content = message
            if context:
                content += f"\n\nContext: {context}"
            self._panel(content, title or "! Error", "nord11")
        else:
            self.console.print(
                f"[{NORD_COLORS['nord11']}][FAIL] {message}[/{NORD_COLORS['nord11']}]"
            )
            if context:
                self.console.print(
                    f"[{NORD_COLORS['nord3']}]       {context}[/{NORD_COLORS['nord3']}]"
                )

    def warning(
        self,
        message: str,
        title: Optional[str] = None,
        context: Optional[str] = None,
        use_panel: bool = True,
    ) -> None:
        if use_panel:
            content = message
            if context:
                content += f"\n\n{context}"
            self._panel(content, title or "⚠ Warning", "nord13", max_width=70)
        else:
            self.console.print(
                f"[{NORD_COLORS['nord13']}]⚠ {message}[/{NORD_COLORS['nord13']}]"
            )
            if context:
                self.console.print(
                    f"[{NORD_COLORS['nord3']}]  {context}[/{NORD_COLORS['nord3']}]"
                )

    def info(
        self, message: str, title: Optional[str] = None, use_panel: bool = True
    ) -> None:
        if use_panel:
            self._panel(message, title or "◆ Info", "nord7", max_width=70)
        else:
            self.console.print(
                f"[{NORD_COLORS['nord7']}]◆ {message}[/{NORD_COLORS['nord7']}]"
            )

    def success(self, message: str) -> None:
        self.console.print(
            f"[{NORD_COLORS['nord14']}][OK] {message}[/{NORD_COLORS['nord14']}]"
        )

    def dim(self, message: str) -> None:
        self.console.print(
            f"[{NORD_COLORS['nord3']}]{message}[/{NORD_COLORS['nord3']}]"
        )

    def conversion_complete(
        self,
        file_name: str,
        location: str,
        written: int,
        failed: Sequence[str],
        duration_seconds: float,
    ) -> None:
        """Summary panel shown after an archive was written.

        Args:
            file_name: Name of the output archive
            location: Where the archive was saved
            written: Number of archive entries
            failed: Manifest paths that could not be downloaded
            duration_seconds: Wall time of the job
        """
        content = (
            f"[bold {NORD_COLORS['nord14']}]{file_name}"
            f"[/bold {NORD_COLORS['nord14']}]\n\n"
        )
        content += f"◈ Saved to: {location}\n"
        content += f"◈ Entries: {written}\n"
        content += f"◈ Duration: {duration_seconds:.1f}s"

        if failed:
            content += (
                f"\n\n[{NORD_COLORS['nord13']}]◇ {len(failed)} files could not be "
                f"downloaded and were skipped:[/{NORD_COLORS['nord13']}]"
            )
            for path in failed[:10]:
                content += f"\n  • {path}"
            if len(failed) > 10:
                content += f"\n  … and {len(failed) - 10} more"

        color = "nord13" if failed else "nord14"
        self._panel(content, "✓ Conversion Complete", color)
