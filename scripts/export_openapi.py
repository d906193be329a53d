# scripts/export_openapi.py
import json
import sys

from main import app

output = sys.argv[1] if len(sys.argv) > 1 else "openapi.json"

with app.test_client() as c:
    res = c.get("/swagger.json")
    if res.status_code != 200:
        sys.exit(f"Failed to fetch swagger.json (status {res.status_code})")
    with open(output, "w", encoding="utf-8") as fh:
        json.dump(res.get_json(), fh, indent=2)
    print(f"→ {output} written")
