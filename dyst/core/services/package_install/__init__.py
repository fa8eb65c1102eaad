"""
Package lifecycle engine — package re-exports.

Each symbol lives in its single-responsibility module inside the
appropriate layer (domain → execution → orchestration)::

    from dyst.core.services.package_install import install, update_all
"""

# ── L1: Domain ──
from dyst.core.services.package_install.domain.asset_selection import (  # noqa: F401
    score_asset,
    select_asset,
)
from dyst.core.services.package_install.domain.release_policy import (  # noqa: F401
    choose_release,
)

# ── L4: Execution ──
from dyst.core.services.package_install.execution.extract import (  # noqa: F401
    archive_kind,
    extract_stream,
)
from dyst.core.services.package_install.execution.publish import (  # noqa: F401
    owned_links,
    publish_executables,
    unlink_owned,
)
from dyst.core.services.package_install.execution.rollback import (  # noqa: F401
    RollbackGuard,
)

# ── L5: Orchestration ──
from dyst.core.services.package_install.orchestration.lifecycle import (  # noqa: F401
    allow_prereleases,
    fetch_release,
    install,
    install_release,
    is_installed,
    list_executables,
    list_installed,
    lock,
    rename,
    uninstall,
    unlock,
    update_all,
    update_package,
)
