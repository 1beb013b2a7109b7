from .packages import handle_packages
from .stubs import handle_generate, handle_ghost

__all__ = [
  "handle_generate",
  "handle_ghost",
  "handle_packages",
]
