import json

from src.api.generate_openapi import generate_openapi


def test_generate_openapi_writes_schema(tmp_path):
    out = generate_openapi(str(tmp_path / "interfaces" / "openapi.json"))
    with open(out, encoding="utf-8") as f:
        schema = json.load(f)

    assert {"/api/health", "/api/v1/tasks", "/api/v1/tasks/{task_id}", "/api/v1/tasks/{task_id}/completed"} <= set(
        schema["paths"]
    )
    assert {t["name"] for t in schema["tags"]} >= {"health", "tasks"}
    list_params = {p["name"] for p in schema["paths"]["/api/v1/tasks"]["get"]["parameters"]}
    assert list_params == {"page", "limit", "completed", "sortBy", "sortOrder"}
