import json
import os
import sys

import requests

base_url = os.getenv("MATCH_API_BASE_URL", "http://127.0.0.1:8000")
match_id = sys.argv[1] if len(sys.argv) > 1 else "1"

try:
    response = requests.post(f"{base_url}/api/matches/{match_id}/toggle", timeout=60)
    response.raise_for_status()
    print(json.dumps(response.json(), indent=2))
except requests.exceptions.RequestException as exc:
    print(f"Error: {exc}")
