"""DNS resolver adapter — NS/A lookups and direct delegation queries.

Standard lookups go through a small fixed set of public recursive
resolvers. query_delegated_ns() bypasses recursion entirely and asks one
specific server (usually a parent-zone nameserver) for the NS records of
a name, reading them from the answer or authority section.

Lookup failure is normal here (NXDOMAIN, REFUSED for undelegated
subdomains, timeouts). Every method returns None / [] on failure instead
of raising, so callers can treat it as a data point.
"""

import logging

import dns.exception
import dns.flags
import dns.message
import dns.query
import dns.rdatatype
import dns.resolver

logger = logging.getLogger(__name__)


def _clean(name):
    return str(name).lower().rstrip(".")


class DnsResolver:
    """Thin wrapper over dnspython with bounded timeouts."""

    def __init__(self, nameservers=None, timeout=5.0):
        self.nameservers = list(nameservers or ["8.8.8.8", "1.1.1.1"])
        self.timeout = timeout

        self._resolver = dns.resolver.Resolver(configure=False)
        self._resolver.nameservers = self.nameservers
        self._resolver.timeout = timeout
        self._resolver.lifetime = timeout * len(self.nameservers)

    def _resolve(self, name, rdtype):
        try:
            return self._resolver.resolve(name, rdtype)
        except dns.resolver.NXDOMAIN:
            logger.info(f"DNS {rdtype} {name}: NXDOMAIN")
        except dns.resolver.NoAnswer:
            logger.info(f"DNS {rdtype} {name}: no answer")
        except dns.resolver.NoNameservers as e:
            # All resolvers answered REFUSED/SERVFAIL
            logger.info(f"DNS {rdtype} {name}: no nameserver could answer ({e})")
        except dns.exception.Timeout:
            logger.warning(f"DNS {rdtype} {name}: timeout")
        except dns.exception.DNSException as e:
            logger.warning(f"DNS {rdtype} {name} failed: {e}")
        return None

    def resolve_ns(self, domain):
        """NS hostnames for domain (lowercase, no trailing dot), or None."""
        answer = self._resolve(domain, "NS")
        if answer is None:
            return None
        return [_clean(rdata.target) for rdata in answer]

    def resolve_a(self, hostname):
        """IPv4 addresses for hostname, or None."""
        answer = self._resolve(hostname, "A")
        if answer is None:
            return None
        return [rdata.address for rdata in answer]

    def query_delegated_ns(self, domain, server_ip):
        """Ask server_ip directly (RD bit off) for the NS records of domain.

        A parent zone answers a delegated child with a referral: the NS
        set sits in the authority section, not the answer. Both sections
        are read, keeping only records owned by `domain` itself.
        """
        target = _clean(domain)
        query = dns.message.make_query(target, dns.rdatatype.NS)
        query.flags &= ~dns.flags.RD

        try:
            response = dns.query.udp(query, server_ip, timeout=self.timeout)
        except dns.exception.Timeout:
            logger.info(f"Delegation query for {target} @{server_ip}: timeout")
            return []
        except (dns.exception.DNSException, OSError) as e:
            logger.info(f"Delegation query for {target} @{server_ip} failed: {e}")
            return []

        nameservers = []
        for rrset in list(response.answer) + list(response.authority):
            if rrset.rdtype != dns.rdatatype.NS or _clean(rrset.name) != target:
                continue
            for rdata in rrset:
                ns = _clean(rdata.target)
                if ns not in nameservers:
                    nameservers.append(ns)
        return nameservers
