import requests
from typing import List, Optional
from urllib.parse import urlsplit, urlunsplit
import ipaddress
import logging
import threading
from requests.adapters import HTTPAdapter

import config
from portal.exceptions import EmptyResponseError, FetchTimeoutError, NetworkError, ResultLookupError

logger = logging.getLogger(__name__)


def candidate_urls(url: str) -> List[str]:
    """
    The configured URL first, then the same URL with the "www." prefix toggled.
    Hosts that can't carry a www. prefix (IPs, localhost) get a single candidate.
    """
    parts = urlsplit(url)
    host = parts.hostname or ""
    if not host or host == "localhost" or _is_ip(host):
        return [url]

    netloc = parts.netloc
    userinfo, _, hostport = netloc.rpartition("@")
    if hostport.lower().startswith("www."):
        toggled = hostport[4:]
    else:
        toggled = f"www.{hostport}"
    new_netloc = f"{userinfo}@{toggled}" if userinfo else toggled

    return [url, urlunsplit((parts.scheme, new_netloc, parts.path, parts.query, parts.fragment))]


def _is_ip(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        return False


class ResultClient:
    def __init__(
        self,
        timeout: float = config.REQUEST_TIMEOUT,
        verify_ssl: bool = config.VERIFY_SSL,
        min_response_length: int = config.MIN_RESPONSE_LENGTH,
        session: Optional[requests.Session] = None,
    ):
        self.timeout = timeout
        self.min_response_length = min_response_length
        self.session = session or requests.Session()
        # One post at a time: the web app calls fetch from several worker threads
        self._lock = threading.Lock()

        # The www. fallback is the only retry we do
        adapter = HTTPAdapter(max_retries=0)
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)

        # Scoped to this session only
        self.session.verify = verify_ssl
        if not verify_ssl:
            logger.warning("TLS certificate verification is disabled for the results portal client")

        # Some portals reject anything that doesn't look like a browser
        self.session.headers.update({
            "User-Agent": config.USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
            "Connection": "keep-alive",
            "Upgrade-Insecure-Requests": "1",
        })

    def fetch(self, url: str, htno: str) -> str:
        """
        Submits the results form for one hall ticket number and returns the page HTML.
        Raises FetchTimeoutError, NetworkError or EmptyResponseError once every
        candidate URL has failed.
        """
        candidates = candidate_urls(url)
        last_error: Optional[ResultLookupError] = None

        for attempt, target in enumerate(candidates, start=1):
            try:
                logger.info(f"Fetching result for {htno} from {target} (attempt {attempt}/{len(candidates)})")
                return self._post_form(target, htno)
            except ResultLookupError as e:
                last_error = e
                if attempt < len(candidates):
                    logger.warning(f"Attempt against {target} failed for {htno}: {e}. Trying fallback host.")

        logger.error(f"All {len(candidates)} attempts failed for {htno}: {last_error}")
        raise last_error

    def _post_form(self, url: str, htno: str) -> str:
        payload = {"mbstatus": "SEARCH", "htno": htno}
        post_headers = {"Content-Type": "application/x-www-form-urlencoded"}

        try:
            with self._lock:
                response = self.session.post(url, data=payload, headers=post_headers, timeout=self.timeout)
        except requests.Timeout:
            raise FetchTimeoutError(f"Request to {url} timed out after {self.timeout:g}s", htno)
        except requests.RequestException as e:
            raise NetworkError(f"Network error while contacting {url}: {e}", htno)

        if not 200 <= response.status_code < 300:
            raise NetworkError(f"HTTP error! status: {response.status_code}", htno, status_code=response.status_code)

        html = response.text
        if not html or len(html.strip()) < self.min_response_length:
            raise EmptyResponseError("Invalid response received from server", htno)
        return html

    def close(self):
        """Close the session to prevent resource leaks"""
        if self.session:
            self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
