"""Remote commit feed access and payload decoding."""

from commitsync.ingestion.decoder import CommitDecoder, DecodeResult, parse_timestamp
from commitsync.ingestion.github_client import GitHubClient, format_since

__all__ = ["CommitDecoder", "DecodeResult", "GitHubClient", "format_since", "parse_timestamp"]
