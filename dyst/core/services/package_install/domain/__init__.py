"""
L1 Domain — pure functions of the install engine.

No filesystem access, no network calls.  Pure input→output.
"""

from dyst.core.services.package_install.domain.asset_selection import (  # noqa: F401
    score_asset,
    select_asset,
)
from dyst.core.services.package_install.domain.release_policy import (  # noqa: F401
    choose_release,
)
