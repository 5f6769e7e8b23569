"""CLI constants and styling."""

# Nord color scheme
NORD_YELLOW = "#ebcb8b"  # nord13
NORD_RED = "#bf616a"     # nord11
NORD_GREEN = "#a3be8c"   # nord14
NORD_BLUE = "#88c0d0"    # nord8
NORD_CYAN = "#8fbcbb"    # nord7
NORD_DARK = "#4c566a"    # nord3
NORD_LIGHT = "#eceff4"   # nord6

# ASCII Banner
BANNER = r"""
    [#8fbcbb]✦[/#8fbcbb] [bold #5e81ac]█▀▄▀█[/] [bold #81a1c1]█▀█[/] [bold #88c0d0]▀█[/] [bold #8fbcbb]█[/] [bold #a3be8c]█▀█[/] [#8fbcbb]✦[/#8fbcbb]
    [#88c0d0]·[/#88c0d0] [bold #5e81ac]█ ▀ █[/] [bold #81a1c1]█▀▄[/] [bold #88c0d0]█▄[/] [bold #8fbcbb]█[/] [bold #a3be8c]█▀▀[/] [#88c0d0]·[/#88c0d0]

    [#4c566a]modpack to server archive[/#4c566a]
"""

# Colors for manifest env requirement levels
ENV_COLORS = {
    "required": NORD_GREEN,
    "optional": NORD_BLUE,
    "unsupported": NORD_RED,
}

# Exit code for Ctrl+C
EXIT_INTERRUPTED = 130
