"""Nameserver verification — does a domain delegate to our nameservers?

Strategy:
1. Resolve the domain's NS records directly. Any match → valid.
2. If that fails for a subdomain (> 2 labels), ask each of the parent
   domain's nameservers directly for the subdomain's NS delegation.
   The first non-empty answer decides.
3. If no delegation records exist but the parent itself is on our
   nameservers, the subdomain inherits that → valid.

A nameserver matches a required one when equal to it or a subdomain of
it ("ns1.byet.org" and "x.ns1.byet.org" both match "ns1.byet.org").

Note: "> 2 labels" misclassifies registrable domains under two-label
suffixes (example.co.uk is treated as a subdomain of co.uk). Kept as-is.
"""

import logging

from hostpanel.services.dns_resolver import DnsResolver

logger = logging.getLogger(__name__)

MSG_VALID = "Nameservers are correctly configured"
MSG_INVALID = (
    "Nameservers are not pointing to our servers. "
    "Please update your domain nameservers."
)
MSG_DELEGATION_OK = "NS delegation found and correctly configured"
MSG_DELEGATION_WRONG = "NS delegation found but not pointing to our servers"
MSG_PARENT_OK = "Parent domain nameservers are correctly configured"
MSG_UNRESOLVED = "Could not resolve nameservers for this domain"


def _normalize(name):
    return name.strip().lower().rstrip(".")


def nameserver_matches(nameserver, required):
    """True if nameserver equals or sits under any of the required hosts."""
    ns = _normalize(nameserver)
    for req in required:
        req = _normalize(req)
        if ns == req or ns.endswith("." + req):
            return True
    return False


def any_nameserver_matches(nameservers, required):
    return any(nameserver_matches(ns, required) for ns in nameservers)


class NameserverVerifier:
    """Checks domain delegation against the configured nameserver set."""

    def __init__(self, config, resolver=None):
        self.config = config
        self.resolver = resolver or DnsResolver(
            nameservers=config.dns_resolvers, timeout=config.dns_timeout
        )

    @property
    def required_nameservers(self):
        return self.config.required_nameservers

    def _result(self, valid, current, message=None):
        required = self.required_nameservers
        return {
            "valid": valid,
            "current_nameservers": current,
            "required_nameservers": required,
            "message": message or (MSG_VALID if valid else MSG_INVALID),
        }

    def check_domain_delegation(self, domain):
        """Return {valid, current_nameservers, required_nameservers, message}."""
        domain = _normalize(domain)
        required = self.required_nameservers

        # --- Tier 1: direct NS lookup ---
        current = self.resolver.resolve_ns(domain)
        if current:
            current = [_normalize(ns) for ns in current]
            return self._result(any_nameserver_matches(current, required), current)

        logger.info(f"[NS Check] Direct NS lookup failed for {domain}")

        labels = domain.split(".")
        if len(labels) <= 2:
            return self._result(False, [], MSG_UNRESOLVED)

        # --- Tier 2: ask the parent zone's servers for the delegation ---
        parent = ".".join(labels[-2:])
        parent_ns = self.resolver.resolve_ns(parent)
        if not parent_ns:
            logger.info(f"[NS Check] Parent NS lookup also failed for {parent}")
            return self._result(False, [], MSG_UNRESOLVED)

        parent_ns = [_normalize(ns) for ns in parent_ns]
        logger.info(f"[NS Check] Parent NS for {parent}: {parent_ns}")

        for parent_host in parent_ns:
            ips = self.resolver.resolve_a(parent_host)
            if not ips:
                logger.info(f"[NS Check] Could not resolve IP for {parent_host}")
                continue

            delegated = self.resolver.query_delegated_ns(domain, ips[0])
            logger.info(
                f"[NS Check] Delegated NS from {parent_host} ({ips[0]}) "
                f"for {domain}: {delegated}"
            )
            if delegated:
                valid = any_nameserver_matches(delegated, required)
                return self._result(
                    valid,
                    delegated,
                    MSG_DELEGATION_OK if valid else MSG_DELEGATION_WRONG,
                )

        # --- Tier 3: no explicit delegation, inherit from parent ---
        if any_nameserver_matches(parent_ns, required):
            return self._result(True, parent_ns, MSG_PARENT_OK)

        return self._result(
            False,
            [],
            f"Please delegate NS for {domain} to our nameservers at your DNS provider",
        )
