"""Portal URL derivation from variable-group conventions."""

from __future__ import annotations

from typing import Mapping, Optional

from .models import VariableValue

LOAD_BALANCER_DOMAIN = "LoadBalancer.Domain"
ELSA_ENABLED = "Elsa.Enabled"
KUBERNETES_HOSTNAME = "Kubernetes.HttpRoute.Hostname"
TENANT_NAME = "Tenant.Name"

FLOW_DOMAIN = "flow.optalitix.net"


def _plain_value(variables: Mapping[str, VariableValue], name: str) -> Optional[str]:
    variable = variables.get(name)
    if variable is None or variable.isSecret:
        return None
    return variable.value


def environment_tag(environment_name: str) -> str:
    """Map an environment name onto the flow host tag (``uat`` or ``dev``)."""
    lowered = environment_name.lower()
    if "uat" in lowered:
        return "uat"
    # QA environments share the dev flow host.
    return "dev"


def portal_url(
    environment_name: str, variables: Optional[Mapping[str, VariableValue]]
) -> Optional[str]:
    """Derive the link to an environment's live application.

    Only non-secret variables are read. Without Elsa the load balancer domain
    is used; with Elsa the Kubernetes route hostname wins, falling back to the
    tenant's flow login page.

    Returns:
        The portal URL, or ``None`` when no rule applies.
    """
    if not variables:
        return None

    load_balancer_domain = _plain_value(variables, LOAD_BALANCER_DOMAIN)
    elsa_enabled = _plain_value(variables, ELSA_ENABLED)
    kubernetes_hostname = _plain_value(variables, KUBERNETES_HOSTNAME)
    tenant = (_plain_value(variables, TENANT_NAME) or "").lower()

    if (elsa_enabled or "").lower() != "true":
        if load_balancer_domain:
            return f"https://{load_balancer_domain}"
        return None

    if kubernetes_hostname:
        return f"https://{kubernetes_hostname}"

    if tenant:
        tag = environment_tag(environment_name)
        return f"https://{tenant}-{tag}.{FLOW_DOMAIN}/{tenant}/login"

    return None
