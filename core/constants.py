"""On-chain object ids used when building swap plans.

Each id can be overridden through an environment variable so the executor can
target a redeployed package without a code change.
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

# name -> (environment variable, default, description)
OBJECT_ID_DEFAULTS = {
    "dca_package_id": (
        "SUI_DCA_PACKAGE_ID",
        "0x89b1372fa44ac2312a3876d83612d1dc9d298af332a42a153913558332a564d0",
        "DCA contract package ID",
    ),
    "cetus_global_config": (
        "SUI_CETUS_GLOBAL_CONFIG",
        "0xdaa46292632c3c4d8f31f23ea0f9b36a28ff3677e9684980e4438403a67a3d8f",
        "Cetus GlobalConfig object ID",
    ),
    "turbos_version": (
        "SUI_TURBOS_VERSION",
        "0xf1cf0e81048df168ebeb1b8030fad24b3e0b53ae827c25053fff0779c1445b6f",
        "Turbos version object ID",
    ),
    "flowx_container": (
        "SUI_FLOWX_CONTAINER",
        "0xba153169476e8c3114962261d1edc70de5ad9781b83cc617ecc8c1923191cae0",
        "FlowX container object ID",
    ),
    "clock_object": (
        "SUI_CLOCK_OBJECT",
        "0x0000000000000000000000000000000000000000000000000000000000000006",
        "Sui Clock shared object ID",
    ),
}


@dataclass(frozen=True)
class ObjectIds:
    dca_package_id: str
    cetus_global_config: str
    turbos_version: str
    flowx_container: str
    clock_object: str


def load_constants(environ: Optional[Mapping[str, str]] = None) -> ObjectIds:
    env = os.environ if environ is None else environ
    values = {}
    for name, (env_var, default, description) in OBJECT_ID_DEFAULTS.items():
        override = (env.get(env_var) or "").strip()
        if override:
            if not override.startswith("0x"):
                logger.warning(
                    "Invalid value for %s (%r), using default %s", env_var, override, default
                )
                override = ""
        if override:
            values[name] = override
        else:
            logger.warning("Using default value for %s (%s=%s)", description, env_var, default)
            values[name] = default
    return ObjectIds(**values)
