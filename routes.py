"""Page destinations and the redirect rules between them."""

from typing import Optional

HOME = "/"
LOGIN = "/login"

# path -> nav label
PROTECTED_ROUTES = {
    "/": "Dashboard",
    "/wallets": "Wallets",
    "/transactions": "Transactions",
    "/reports": "Reports",
    "/settings": "Settings",
}

PUBLIC_ROUTES = {
    "/login": "Sign In",
    "/register": "Create Account",
    "/forgot-password": "Reset Password",
}


def normalize_path(path: Optional[str]) -> str:
    path = (path or HOME).strip().split("?", 1)[0]
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1:
        path = path.rstrip("/")
    return path or HOME


def resolve(path: Optional[str], signed_in: bool) -> str:
    """Return the path that should actually be shown.

    Unknown paths go to the dashboard; protected pages need a session and
    the sign-in pages are skipped once there is one.
    """
    path = normalize_path(path)
    if path not in PROTECTED_ROUTES and path not in PUBLIC_ROUTES:
        path = HOME
    if path in PROTECTED_ROUTES and not signed_in:
        return LOGIN
    if path in PUBLIC_ROUTES and signed_in:
        return HOME
    return path
