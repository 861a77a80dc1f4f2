from __future__ import annotations

import argparse
import sys
import uuid
from pathlib import Path

import httpx

# Allow running from a checkout without installing the package.
SRC = Path(__file__).resolve().parents[1] / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from portal_auth.core.security import generate_temporary_password  # noqa: E402

EXPECTED_CORS_HEADERS = ("access-control-allow-origin", "access-control-allow-headers")


def _check_preflight(client: httpx.Client, url: str) -> None:
    resp = client.options(url)
    resp.raise_for_status()
    missing = [h for h in EXPECTED_CORS_HEADERS if h not in resp.headers]
    if missing:
        raise RuntimeError(f"preflight for {url} is missing headers: {', '.join(missing)}")


def _run(
    *,
    base_url: str,
    prefix: str,
    email: str | None,
    password: str | None,
    new_password: str | None,
    timeout: float,
) -> int:
    base_url = base_url.rstrip("/")
    functions_url = base_url + "/" + prefix.strip("/") if prefix.strip("/") else base_url
    verify_url = f"{functions_url}/verify-login"
    complete_url = f"{functions_url}/complete-password-reset"

    with httpx.Client(trust_env=False, timeout=timeout) as client:
        health = client.get(f"{base_url}/system/health")
        health.raise_for_status()

        _check_preflight(client, verify_url)
        _check_preflight(client, complete_url)

        # Unknown account must be rejected without revealing whether it exists.
        probe_email = f"smoke_{uuid.uuid4().hex[:8]}@example.invalid"
        r = client.post(verify_url, json={"email": probe_email, "password": "not-the-password"})
        if r.status_code != 401:
            print(f"FAIL: expected 401 for unknown account, got {r.status_code}: {r.text}")
            return 2

        r = client.post(verify_url, json={"email": probe_email})
        if r.status_code != 400:
            print(f"FAIL: expected 400 for missing password, got {r.status_code}: {r.text}")
            return 2

        if email and password:
            r = client.post(verify_url, json={"email": email, "password": password})
            print("verify-login status=", r.status_code)
            print("verify-login body=", r.json())
            r.raise_for_status()
            body = r.json()

            if body.get("requires_reset"):
                if not new_password:
                    new_password = generate_temporary_password()
                    print("generated new password=", new_password)
                r = client.post(
                    complete_url,
                    json={"user_id": body["user_id"], "email": body["email"], "new_password": new_password},
                )
                print("complete-password-reset status=", r.status_code)
                print("complete-password-reset body=", r.json())
                r.raise_for_status()

                r = client.post(verify_url, json={"email": email, "password": new_password})
                r.raise_for_status()
                if r.json().get("requires_reset"):
                    print("FAIL: account still requires a reset after completion")
                    return 2

    print("OK")
    return 0


def main(argv: list[str]) -> int:
    parser = argparse.ArgumentParser(
        description="Smoke test: preflight -> verify-login rejections -> optional temporary-password flow."
    )
    parser.add_argument("--base-url", default="http://127.0.0.1:8000")
    parser.add_argument("--prefix", default="/functions/v1", help="Functions prefix ('' for root paths)")
    parser.add_argument("--email", default=None)
    parser.add_argument("--password", default=None, help="Real or temporary password for --email")
    parser.add_argument(
        "--new-password", default=None, help="Used when the account must reset its password (generated when omitted)"
    )
    parser.add_argument("--timeout", type=float, default=15.0)
    args = parser.parse_args(argv)

    try:
        return _run(
            base_url=args.base_url,
            prefix=args.prefix,
            email=args.email,
            password=args.password,
            new_password=args.new_password,
            timeout=args.timeout,
        )
    except httpx.HTTPError as e:
        print("HTTP ERROR:", e)
        return 1
    except Exception as e:
        print("ERROR:", e)
        return 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
