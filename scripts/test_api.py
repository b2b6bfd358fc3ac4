# =============================================================================
# scripts/test_api.py — Quick API smoke test (run with the server on 127.0.0.1:4000)
# =============================================================================
# Usage: ENGINE_API_KEY=... python scripts/test_api.py
# =============================================================================

import os
import sys

try:
    import requests
except ImportError:
    print("Install requests: pip install requests")
    sys.exit(1)

BASE = os.environ.get("BASE_URL", "http://127.0.0.1:4000")
HEADERS = {"x-engine-key": os.environ.get("ENGINE_API_KEY", "")}
TIMEOUT = 5


def get(path: str, auth: bool = True) -> dict | list | None:
    try:
        r = requests.get(f"{BASE}{path}", headers=HEADERS if auth else None, timeout=TIMEOUT)
        r.raise_for_status()
        return r.json()
    except Exception as e:
        print(f"GET {path} failed: {e}")
        return None


def post(path: str, json: dict) -> tuple[dict | list | None, int | None]:
    try:
        r = requests.post(f"{BASE}{path}", json=json, headers=HEADERS, timeout=60)
        r.raise_for_status()
        return r.json(), r.status_code
    except requests.HTTPError as e:
        code = e.response.status_code if e.response is not None else None
        print(f"POST {path} failed: {e} (status={code})")
        if e.response is not None:
            print("Response:", e.response.text[:500])
        return None, code
    except requests.RequestException as e:
        print(f"POST {path} failed: {e}")
        return None, None


def main() -> int:
    print("1. GET /health ...")
    h = get("/health", auth=False)
    if not h:
        print("   Server not reachable. Start with: python run.py")
        return 1
    print("   OK:", h.get("status"), "| providers:", h.get("providers"))

    if not HEADERS["x-engine-key"]:
        print("   ENGINE_API_KEY is not set; authenticated checks skipped.")
        return 0

    print("2. GET /v1/dashboard/overview ...")
    d = get("/v1/dashboard/overview?days=7")
    if d is None:
        return 1
    print("   OK: totalRequests =", d.get("totalRequests"), "| totalCost =", d.get("totalCost"))

    print("3. GET /v1/dashboard/cost-projection ...")
    p = get("/v1/dashboard/cost-projection")
    if p is None:
        return 1
    print("   OK: monthly =", p.get("monthly"))

    print("4. POST /v1/generate (taskType=explanation) ...")
    out, status = post("/v1/generate", {
        "prompt": "In which year did the USSR fall?",
        "taskType": "explanation",
        "temperature": 0.7,
    })
    if out:
        print("   OK:", f"{out.get('provider')}:{out.get('model')}", "| latency =", out.get("latency"))
        print("   content (first 200 chars):", (out.get("content") or "")[:200])
    else:
        print("   Tip: set GROQ_API_KEY / GOOGLE_API_KEY and check outbound HTTPS.")
        return 1

    print("5. POST /v1/generate-json ...")
    out, status = post("/v1/generate-json", {
        "prompt": 'Return {"year": <year the USSR fell>} as JSON.',
        "maxRetries": 2,
    })
    if out:
        print("   OK: data =", out.get("data"), "| meta =", out.get("meta"))
    else:
        return 1

    print("6. GET /v1/admin/logs ...")
    logs = get("/v1/admin/logs?limit=5")
    if logs is not None:
        print("   OK:", len(logs), "recent records")

    print("All checks passed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
