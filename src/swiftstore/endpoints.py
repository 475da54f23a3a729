"""Known auth endpoints by datacenter, network and protocol."""

from __future__ import annotations

from typing import Literal

Network = Literal["public", "private"]
Protocol = Literal["http", "https"]

DATACENTERS = ("dal05", "sjc01", "tor01", "ams01", "lon02", "sng01", "hkg02")

PUBLIC_DOMAIN = "objectstorage.softlayer.net"
PRIVATE_DOMAIN = "objectstorage.service.networklayer.com"
AUTH_PATH = "/auth/v1.0"


def _endpoints(datacenter: str) -> dict[str, dict[str, str]]:
    return {
        network: {
            protocol: f"{protocol}://{datacenter}.{domain}{AUTH_PATH}"
            for protocol in ("http", "https")
        }
        for network, domain in (("public", PUBLIC_DOMAIN), ("private", PRIVATE_DOMAIN))
    }


ENDPOINTS: dict[str, dict[str, dict[str, str]]] = {dc: _endpoints(dc) for dc in DATACENTERS}


def auth_url_for(datacenter: str, network: Network = "public", protocol: Protocol = "https") -> str:
    """Look up the auth URL of a datacenter.

    Parameters
    ----------
    datacenter : str
        Datacenter code, e.g. ``"dal05"``.
    network : ``"public"`` | ``"private"``
        Network to reach the endpoint over.
    protocol : ``"http"`` | ``"https"``
        URL scheme.

    Returns
    -------
    str

    Raises
    ------
    ValueError
        If the datacenter, network or protocol is unknown.
    """
    try:
        return ENDPOINTS[datacenter][network][protocol]
    except KeyError:
        raise ValueError(
            f"Unknown endpoint {datacenter}/{network}/{protocol}; known datacenters: {', '.join(DATACENTERS)}"
        ) from None
