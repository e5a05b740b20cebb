from unittest.mock import Mock


class FakeRouterApi:
    """Stands in for a librouteros Api; answers each path from ``responses``."""

    def __init__(self):
        self.responses = {}
        self.calls = []
        self.closed = False

    def __call__(self, path, **kwargs):
        self.calls.append((path, kwargs))
        result = self.responses.get(path, [])
        if isinstance(result, Exception):
            raise result
        return iter(result)

    def close(self):
        self.closed = True

    def paths(self):
        return [path for path, _ in self.calls]

    def calls_to(self, path):
        return [kwargs for p, kwargs in self.calls if p == path]


def yo_xml(**fields):
    """YoPayments response document built from keyword fields"""
    inner = "".join(f"<{name}>{value}</{name}>" for name, value in fields.items())
    return f"<AutoCreate><Response>{inner}</Response></AutoCreate>"


def http_response(status_code=200, text="", json_data=None):
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    response.text = text
    if json_data is None:
        response.json.side_effect = ValueError("No JSON")
    else:
        response.json.return_value = json_data
    return response
