import os

# Keep registry and ArgoCD credentials from the developer's shell out of tests
for _var in ("IAP_TOKEN", "GHA_OIDC_TOKEN", "ARGOCD_AUTH_TOKEN", "CHARTRELEASE_CONFIG"):
    os.environ.pop(_var, None)

from tests.fixtures import *  # noqa: E402,F401,F403
