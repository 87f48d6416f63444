"""
Core package for screenshot-verify.
Lightweight package init to avoid import cycles.

Consumers should import submodules directly, e.g.:
  from screenshot_verify.core.verify import Verifier, VerifyRequest
  from screenshot_verify.core.release import Releaser, Version
"""

__all__: list[str] = []
