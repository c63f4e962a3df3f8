# Import Python dependencies
import json
import os
from datetime import datetime, timezone
from time import sleep
from typing import Any, Callable, Dict, List, Optional

import requests

from .errors import ListingUnavailable, LookupFailed, NoCommitsFound
from .models import RemoteFileEntry
from ..logging.workflow_logger import get_logger
from ..storage.commit_archive import CommitArchive

# Get logger instance
logger = get_logger()


# Load configuration
def load_config():
    """Load configuration from config.json"""
    config_path = os.path.join(os.path.dirname(__file__), '..', 'config.json')
    with open(config_path, 'r') as f:
        return json.load(f)


config = load_config()
VERSION = config['application']['version']
TOOLNAME = config['application']['toolname']


def parse_commit_date(value: str) -> datetime:
    """Parse a GitHub ISO-8601 date ('2023-05-25T20:38:57Z') into an aware datetime"""
    parsed = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def latest_author_date(commits: List[Dict[str, Any]]) -> Optional[datetime]:
    """
    Newest commit author date in a commits API payload.

    The API orders commits newest first, but the order is not relied upon:
    every author date is parsed and the maximum is returned. Commits without
    a parseable author date are ignored. Returns None if none remain.
    """
    latest = None
    for commit in commits:
        try:
            raw_date = commit['commit']['author']['date']
            commit_date = parse_commit_date(raw_date)
        except (KeyError, TypeError, ValueError, AttributeError):
            continue
        if latest is None or commit_date > latest:
            latest = commit_date
    return latest


class GitHubCatalogClient:
    """
    Remote catalog access through the GitHub contents and commits APIs.

    Provides the two remote collaborators of the pipeline: the directory
    listing of a catalog path and the latest commit timestamp of a file.
    """

    def __init__(self, token: Optional[str] = None, api_config: Optional[Dict[str, Any]] = None,
                 archive: Optional[CommitArchive] = None):
        self.api_config = api_config if api_config is not None else config['api']
        self.token = token or ""
        self.archive = archive
        self.headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": f"{TOOLNAME}/{VERSION}"
        }
        # Only add the token to headers if one was provided
        if self.token:
            self.headers["Authorization"] = f"Bearer {self.token}"

    def _get_json(self, url: str, params: Optional[Dict[str, Any]], timeout: float, label: str):
        """GET with the configured retry policy. Re-raises the last RequestException."""
        retry = self.api_config['retry']
        max_retries = retry['max_attempts']
        for attempt in range(max_retries):
            try:
                response = requests.get(url, params=params, headers=self.headers, timeout=timeout)
                response.raise_for_status()
                return response.json()
            except requests.exceptions.RequestException as e:
                logger.warning(f"{label} request failed (Attempt {attempt + 1}/{max_retries}) - {e}", group="commit_queries")
                if hasattr(e, 'response') and e.response is not None and 'x-ratelimit-remaining' in e.response.headers:
                    logger.warning(f"GitHub rate limit remaining: {e.response.headers['x-ratelimit-remaining']}", group="commit_queries")

                if attempt < max_retries - 1:
                    wait_time = retry['delay_with_token'] if self.token else retry['delay_without_token']
                    logger.debug(f"Waiting {wait_time} seconds before retry...", group="commit_queries")
                    sleep(wait_time)
                else:
                    raise

    def list_remote_files(self, catalog_id: str, path: str) -> List[RemoteFileEntry]:
        """
        List the files of one catalog directory, in API order.

        Raises:
            ListingUnavailable: the listing could not be fetched or is not a file list
        """
        url = self.api_config['endpoints']['github_contents'].format(catalog=catalog_id, path=path.strip('/'))
        logger.api_call("GitHub Contents API", {"catalog": catalog_id, "path": path}, group="listing")

        try:
            data = self._get_json(url, None, self.api_config['timeouts']['listing'], "GitHub Contents API")
        except requests.exceptions.RequestException as e:
            raise ListingUnavailable(catalog_id, path, f"Could not read listing {catalog_id}{path}: {e}") from e

        if not isinstance(data, list):
            raise ListingUnavailable(catalog_id, path,
                                     f"Improperly formatted listing for {catalog_id}{path}: expected a list of {{name, path}} objects")

        entries = []
        for item in data:
            if not isinstance(item, dict) or 'name' not in item or 'path' not in item:
                raise ListingUnavailable(catalog_id, path,
                                         f"Improperly formatted listing entry for {catalog_id}{path}: {item!r}")
            # Subdirectories and symlinks carry no criteria of their own
            if item.get('type', 'file') != 'file':
                logger.debug(f"Ignoring non-file listing entry: {item['path']} ({item.get('type')})", group="listing")
                continue
            entries.append(RemoteFileEntry(name=item['name'], path=item['path']))

        logger.api_response("GitHub Contents API", "Success", count=len(entries), group="listing")
        return entries

    def latest_commit_timestamp(self, catalog_id: str, path: str) -> datetime:
        """
        Most recent commit author date for a catalog file.

        Raises:
            NoCommitsFound: the commit history for the path is empty
            LookupFailed: request, HTTP or payload failure
        """
        url = self.api_config['endpoints']['github_commits'].format(catalog=catalog_id)
        logger.api_call("GitHub Commits API", {"catalog": catalog_id, "path": path}, group="commit_queries")

        try:
            commits = self._get_json(url, {"path": path}, self.api_config['timeouts']['commits'], "GitHub Commits API")
        except requests.exceptions.RequestException as e:
            raise LookupFailed(path, f"Commit lookup failed for {path}: {e}") from e

        if not isinstance(commits, list):
            raise LookupFailed(path, f"Unexpected commits payload for {path}: {type(commits).__name__}")

        if self.archive is not None:
            self.archive.store(catalog_id, path, commits)

        if not commits:
            raise NoCommitsFound(path)

        latest = latest_author_date(commits)
        if latest is None:
            raise LookupFailed(path, f"No parseable author date in {len(commits)} commits for {path}")

        logger.api_response("GitHub Commits API", f"Last commit {latest.isoformat()}", count=len(commits), group="commit_queries")
        return latest

    def commit_lookup(self, catalog_id: str) -> Callable[[str], datetime]:
        """Bind a catalog to produce the single-argument lookup the date index builder uses"""
        def lookup(path: str) -> datetime:
            return self.latest_commit_timestamp(catalog_id, path)
        return lookup


def gatherRemoteListing(client: GitHubCatalogClient, catalog_id: str, paths: List[str]) -> List[RemoteFileEntry]:
    """
    Concatenate the listings of several catalog directories, preserving the
    order of paths and of entries within each path.

    Any unavailable directory aborts the whole gather.
    """
    entries: List[RemoteFileEntry] = []
    for path in paths:
        path_entries = client.list_remote_files(catalog_id, path)
        logger.info(f"Listed {len(path_entries)} criteria files from {catalog_id}{path}", group="listing")
        entries.extend(path_entries)
    return entries
