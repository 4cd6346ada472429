# SPDX-License-Identifier: MIT

from typing import Optional

from rich import print
from rich.padding import Padding

from schedboard.view.state import get_show_header


def header(class_id: Optional[str], sub_header: Optional[str] = None) -> None:
    """Print the application header with the class being scheduled.

    Args:
        class_id: The class whose schedule is shown
        sub_header: Optional sub-header text to display
    """
    if not get_show_header():
        return

    additional = ""
    if sub_header is not None:
        additional = f"[sandy_brown]{sub_header}[/sandy_brown]"
    active_class = f"[plum1]{class_id or 'no class selected'}[/plum1]"

    print(Padding("[dark_orange]schedboard[/dark_orange]", (1, 0, 0, 1)))
    print(Padding(additional, (0, 1)))
    print(Padding(active_class, (0, 1)))
