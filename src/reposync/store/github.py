"""Remote store over the GitHub REST API.

Uses the git data endpoints (blobs, trees, commits, refs) so a whole
change-set lands as a single commit, and the contents endpoint for reads.
"""

from __future__ import annotations

import base64
import logging
from collections.abc import Iterator, Sequence
from urllib.parse import quote

import httpx

from ..config import SyncConfig
from ..exceptions import AuthError, ConflictError, NotFoundError, RemoteAPIError
from ..objects import CommitInfo, RemoteEntry, RepositoryInfo, RepositoryRef, TreeEntry
from .base import RemoteStore

logger = logging.getLogger(__name__)

API_VERSION = "2022-11-28"

_NO_CONTENT = object()


def _error_detail(response: httpx.Response) -> str:
    """Best-effort human-readable message from an error response body."""
    try:
        body = response.json()
    except ValueError:
        return response.text.strip()[:300]
    if isinstance(body, dict):
        message = str(body.get("message") or "")
        errors = body.get("errors")
        if isinstance(errors, list) and errors:
            parts = [
                str(e.get("message") or e.get("code") or e) if isinstance(e, dict) else str(e)
                for e in errors
            ]
            message = f"{message} ({'; '.join(parts)})" if message else "; ".join(parts)
        return message
    return str(body)[:300]


def _is_rate_limited(response: httpx.Response) -> bool:
    if response.status_code == 429:
        return True
    return response.status_code == 403 and response.headers.get("x-ratelimit-remaining") == "0"


def _raise_for_status(response: httpx.Response, operation: str) -> None:
    """Map an HTTP error response onto the reposync exception taxonomy."""
    status = response.status_code
    if status < 400:
        return
    detail = _error_detail(response)
    message = f"GitHub {operation} failed ({status})" + (f": {detail}" if detail else "")
    if _is_rate_limited(response):
        raise RemoteAPIError(message, status=status, detail=detail)
    if status in (401, 403):
        raise AuthError(message)
    if status == 404:
        raise NotFoundError(message)
    if status == 409:
        raise ConflictError(message)
    raise RemoteAPIError(message, status=status, detail=detail)


class GitHubStore(RemoteStore):
    """A :class:`RemoteStore` talking to GitHub (or GitHub Enterprise).

    The bearer token and endpoint come from *config*; an explicit
    *client* may be injected (tests pass one built on
    ``httpx.MockTransport``).
    """

    def __init__(self, config: SyncConfig | None = None, *, client: httpx.Client | None = None):
        self._config = config or SyncConfig()
        self._owns_client = client is None
        if client is None:
            client = httpx.Client(
                base_url=self._config.api_url,
                timeout=self._config.request_timeout,
            )
        client.headers.update(self._headers())
        self._client = client

    def __repr__(self) -> str:
        return f"GitHubStore({self._config.api_url!r})"

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
            "User-Agent": "reposync",
        }
        if self._config.token:
            headers["Authorization"] = f"Bearer {self._config.token}"
        return headers

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def _request(
        self,
        method: str,
        url: str,
        operation: str,
        *,
        json: dict | None = None,
        params: dict | None = None,
    ) -> httpx.Response:
        logger.debug("%s %s", method, url)
        try:
            response = self._client.request(method, url, json=json, params=params)
        except httpx.TimeoutException as exc:
            raise RemoteAPIError(f"GitHub {operation} timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise RemoteAPIError(f"GitHub {operation} failed: {exc}") from exc
        _raise_for_status(response, operation)
        return response

    def _paginate(self, url: str, operation: str, params: dict | None = None) -> Iterator[dict]:
        """Yield the items of a list endpoint, following ``Link: rel="next"``."""
        next_url: str | None = url
        while next_url:
            response = self._request("GET", next_url, operation, params=params)
            yield from response.json()
            next_url = response.links.get("next", {}).get("url")
            # the next link already carries the query
            params = None

    @staticmethod
    def _repo_url(repo: RepositoryRef) -> str:
        return f"/repos/{quote(repo.owner, safe='')}/{quote(repo.name, safe='')}"

    @staticmethod
    def _ref_path(branch: str) -> str:
        return f"heads/{quote(branch, safe='/')}"

    # --- Repositories ---

    @staticmethod
    def _repository_info(data: dict) -> RepositoryInfo:
        return RepositoryInfo(
            owner=data["owner"]["login"],
            name=data["name"],
            default_branch=data.get("default_branch"),
            url=data.get("html_url"),
            private=data.get("private"),
            description=data.get("description"),
            updated_at=data.get("updated_at"),
        )

    def get_repository(self, repo: RepositoryRef) -> RepositoryInfo:
        data = self._request("GET", self._repo_url(repo), "get repository").json()
        return self._repository_info(data)

    def authenticated_user(self) -> str:
        """Login name of the token's owner."""
        return self._request("GET", "/user", "get user").json()["login"]

    def create_repository(
        self,
        repo: RepositoryRef,
        *,
        private: bool = True,
        description: str | None = None,
    ) -> RepositoryInfo:
        # An empty repository has no default branch to set; GitHub adopts
        # the first branch pushed, so repo.branch takes effect on deploy.
        body: dict = {"name": repo.name, "private": private, "auto_init": False}
        if description:
            body["description"] = description
        if repo.owner == self.authenticated_user():
            url = "/user/repos"
        else:
            url = f"/orgs/{quote(repo.owner, safe='')}/repos"
        try:
            data = self._request("POST", url, "create repository", json=body).json()
        except RemoteAPIError as exc:
            if exc.status == 422:
                raise ConflictError(f"Repository already exists: {repo.full_name}") from exc
            raise
        logger.info("Created repository %s", data.get("full_name", repo.full_name))
        return self._repository_info(data)

    def list_repositories(self) -> list[RepositoryInfo]:
        pages = self._paginate("/user/repos", "list repositories", {"sort": "updated", "per_page": 100})
        return [self._repository_info(d) for d in pages]

    # --- Refs ---

    def list_branches(self, repo: RepositoryRef) -> list[str]:
        pages = self._paginate(f"{self._repo_url(repo)}/branches", "list branches", {"per_page": 100})
        return [b["name"] for b in pages]

    def get_ref(self, repo: RepositoryRef, branch: str) -> str | None:
        url = f"{self._repo_url(repo)}/git/ref/{self._ref_path(branch)}"
        try:
            data = self._request("GET", url, "get ref").json()
        except NotFoundError:
            return None
        except ConflictError:
            # 409 "Git Repository is empty"
            return None
        # A prefix match returns a list of refs rather than the ref itself
        if isinstance(data, list):
            return None
        return data["object"]["sha"]

    def create_ref(self, repo: RepositoryRef, branch: str, commit_id: str) -> None:
        body = {"ref": f"refs/heads/{branch}", "sha": commit_id}
        try:
            self._request("POST", f"{self._repo_url(repo)}/git/refs", "create ref", json=body)
        except RemoteAPIError as exc:
            if exc.status == 422:
                raise ConflictError(f"Branch {branch!r} already exists: {exc.detail}") from exc
            raise

    def update_ref(self, repo: RepositoryRef, branch: str, commit_id: str, expected: str) -> None:
        # GitHub has no compare-and-swap; a non-forced update refuses
        # anything that is not a fast-forward of the current head.
        url = f"{self._repo_url(repo)}/git/refs/{self._ref_path(branch)}"
        try:
            self._request("PATCH", url, "update ref", json={"sha": commit_id, "force": False})
        except RemoteAPIError as exc:
            if exc.status == 422:
                raise ConflictError(
                    f"Branch {branch!r} has advanced since {expected[:7]}: {exc.detail}"
                ) from exc
            raise

    # --- Objects ---

    def get_commit(self, repo: RepositoryRef, commit_id: str) -> CommitInfo:
        url = f"{self._repo_url(repo)}/git/commits/{commit_id}"
        data = self._request("GET", url, "get commit").json()
        return self._commit_info(repo, data)

    def _commit_info(self, repo: RepositoryRef, data: dict) -> CommitInfo:
        return CommitInfo(
            id=data["sha"],
            tree_id=data["tree"]["sha"],
            parents=tuple(p["sha"] for p in data.get("parents", ())),
            message=data.get("message"),
            url=data.get("html_url") or self.commit_url(repo, data["sha"]),
        )

    def create_blob(self, repo: RepositoryRef, data: bytes) -> str:
        body = {"content": base64.b64encode(data).decode("ascii"), "encoding": "base64"}
        response = self._request("POST", f"{self._repo_url(repo)}/git/blobs", "create blob", json=body)
        return response.json()["sha"]

    def create_tree(
        self,
        repo: RepositoryRef,
        base_tree_id: str | None,
        entries: Sequence[TreeEntry],
    ) -> str:
        body: dict = {
            "tree": [
                {"path": e.path, "mode": e.mode, "type": "blob", "sha": e.object_id}
                for e in entries
            ],
        }
        if base_tree_id is not None:
            body["base_tree"] = base_tree_id
        response = self._request("POST", f"{self._repo_url(repo)}/git/trees", "create tree", json=body)
        return response.json()["sha"]

    def create_commit(
        self,
        repo: RepositoryRef,
        tree_id: str,
        parents: Sequence[str],
        message: str,
    ) -> CommitInfo:
        body = {"message": message, "tree": tree_id, "parents": list(parents)}
        response = self._request("POST", f"{self._repo_url(repo)}/git/commits", "create commit", json=body)
        return self._commit_info(repo, response.json())

    # --- Reads ---

    def list_tree(self, repo: RepositoryRef, tree_id: str) -> tuple[list[RemoteEntry], bool]:
        url = f"{self._repo_url(repo)}/git/trees/{tree_id}"
        data = self._request("GET", url, "list tree", params={"recursive": "1"}).json()
        entries = []
        for item in data.get("tree", ()):
            kind = {"blob": "file", "tree": "directory"}.get(item.get("type"))
            if kind is None:
                # submodule commits have no browsable content
                continue
            entries.append(RemoteEntry(item["path"], kind, item.get("size"), item.get("sha")))
        return entries, bool(data.get("truncated"))

    def read_file(self, repo: RepositoryRef, commit_id: str, path: str) -> bytes:
        url = f"{self._repo_url(repo)}/contents/{quote(path, safe='/')}"
        data = self._request("GET", url, "read file", params={"ref": commit_id}).json()
        if isinstance(data, list) or data.get("type") != "file":
            raise NotFoundError(f"{path} is not a file")
        content = self._decode_content(data)
        if content is _NO_CONTENT:
            # Files over 1 MB come back without inline content
            blob_url = f"{self._repo_url(repo)}/git/blobs/{data['sha']}"
            content = self._decode_content(self._request("GET", blob_url, "read blob").json())
        if content is _NO_CONTENT:
            raise RemoteAPIError(f"GitHub returned no content for {path}")
        return content

    @staticmethod
    def _decode_content(data: dict):
        encoding = data.get("encoding")
        if encoding == "base64":
            return base64.b64decode(data.get("content") or "")
        if encoding in ("utf-8", "utf8"):
            return (data.get("content") or "").encode("utf-8")
        return _NO_CONTENT

    def commit_url(self, repo: RepositoryRef, commit_id: str) -> str | None:
        return f"{self._config.web_url}/{repo.owner}/{repo.name}/commit/{commit_id}"
