"""VirusTotal API v3 client."""

from vtwatch.engines.virustotal.client import VT_API_URL, VirusTotalClient

__all__ = ["VT_API_URL", "VirusTotalClient"]
