from pathlib import Path

from fastapi.responses import HTMLResponse
from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape

from .errors import RenderError

TEMPLATE_DIR = Path(__file__).resolve().parent / 'templates'

env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(['html']),
)


def render(name: str, **context) -> HTMLResponse:
    try:
        body = env.get_template(name).render(**context)
    except TemplateError as e:
        raise RenderError(f'could not render {name}: {e}') from e
    return HTMLResponse(body)
