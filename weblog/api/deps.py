from fastapi import Depends, HTTPException, Request, status

from weblog.core.caches import WebLogCaches
from weblog.core.context import set_web_log_id
from weblog.core.errors import WebLogNotFoundError
from weblog.data.base import WebLogData
from weblog.models import WebLog


def get_data(request: Request) -> WebLogData:
    return request.app.state.data


def get_caches(request: Request) -> WebLogCaches:
    return request.app.state.caches


def request_path(request: Request) -> str:
    """
    The percent-decoded request path.

    Read from the ASGI scope; `request.url.path` re-parses the decoded path as
    a URL, losing everything after a decoded `#` or `?`.
    """
    return request.scope["path"]


def request_url(request: Request) -> str:
    """Scheme, host and path of the request (no query string)."""
    return f"{request.url.scheme}://{request.url.netloc}{request_path(request)}"


def find_web_log(caches: WebLogCaches, url: str) -> WebLog:
    web_log = caches.web_logs.try_get(url)
    if web_log is None:
        raise WebLogNotFoundError(url)
    return web_log


def get_web_log(request: Request, caches: WebLogCaches = Depends(get_caches)) -> WebLog:
    """
    The web log the request was made to.

    Raises 404 when no web log's URL base matches the request URL.
    """
    try:
        web_log = find_web_log(caches, request_url(request))
    except WebLogNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Web log not found")
    set_web_log_id(web_log.id)
    return web_log
