"""Print the OpenAPI schema of the pricing engine API as JSON."""

import json

from pricing_engine.main import app

if __name__ == "__main__":
    print(json.dumps(app.openapi()))
