# contractor_hub/client/notices.py
from dataclasses import dataclass


@dataclass
class Notice:
    """A user-visible message raised by a client flow"""
    title: str
    description: str = ""
    variant: str = "default"  # 'default' or 'destructive'

    @property
    def is_error(self) -> bool:
        return self.variant == "destructive"
