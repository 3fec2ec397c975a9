import base64
import json
import logging
import os

import requests

logger = logging.getLogger()
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO").upper())

GEMINI_API_URL = (
    "https://generativelanguage.googleapis.com/v1beta/models/"
    "gemini-1.5-flash-latest:generateContent"
)

CORS_HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*"
}

# --- Padrão Singleton para a sessão HTTP (reuso de conexão no Warm Start) ---
_HTTP_SESSION = None

def get_http_session():
    global _HTTP_SESSION
    if _HTTP_SESSION is None:
        _HTTP_SESSION = requests.Session()
    return _HTTP_SESSION

def _json_response(status_code, payload):
    return {
        "statusCode": status_code,
        "headers": dict(CORS_HEADERS),
        "body": json.dumps(payload)
    }

def get_method(event):
    """Método HTTP do evento (API Gateway REST v1 ou HTTP API v2)."""
    method = event.get("httpMethod")
    if not method:
        http_ctx = (event.get("requestContext") or {}).get("http") or {}
        method = http_ctx.get("method", "")
    if not isinstance(method, str):
        return ""
    return method.upper()

# Diferencia "sem body" de um body JSON literal null
NO_BODY = object()

def get_json_body(event):
    raw = event.get("body")
    if not raw:
        return NO_BODY
    if event.get("isBase64Encoded"):
        raw = base64.b64decode(raw).decode("utf-8")
    return json.loads(raw)

def extract_text(response_data):
    """
    Extrai candidates[0].content.parts[0].text da resposta do Gemini.
    Qualquer elo ausente (ou com formato inesperado) resulta em "".
    """
    if not isinstance(response_data, dict):
        return ""

    candidates = response_data.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return ""

    first = candidates[0]
    if not isinstance(first, dict):
        return ""

    content = first.get("content")
    if not isinstance(content, dict):
        return ""

    parts = content.get("parts")
    if not isinstance(parts, list) or not parts:
        return ""

    part = parts[0]
    if not isinstance(part, dict):
        return ""

    text = part.get("text")
    if not isinstance(text, str):
        return ""
    return text

def _redact(message, secret):
    # Exceções do requests carregam a URL, que contém a chave
    return message.replace(secret, "***") if secret else message

def lambda_handler(event, context, http_session=None):
    """
    Proxy para o generateContent do Gemini.
    Rota: POST /generate

    O body do cliente é repassado sem validação; a chave fica só no servidor.
    Args:
        http_session: Sessão HTTP opcional (injeção de dependência para testes).
    """
    if get_method(event) != "POST":
        return {
            "statusCode": 405,
            "headers": {"Content-Type": "text/plain", "Allow": "POST"},
            "body": "Method Not Allowed"
        }

    api_key = os.environ.get("GEMINI_API_KEY")
    if not api_key:
        logger.error("GEMINI_API_KEY não configurada no servidor.")
        return _json_response(500, {"error": "API key is not configured on the server."})

    session = http_session if http_session else get_http_session()

    try:
        request_body = get_json_body(event)

        upstream = session.post(
            GEMINI_API_URL,
            params={"key": api_key},
            headers={"Content-Type": "application/json"},
            data=None if request_body is NO_BODY else json.dumps(request_body)
        )

        response_data = upstream.json()

        # Sucesso é só 2xx (requests considera ok qualquer status < 400)
        if not 200 <= upstream.status_code < 300:
            logger.error(
                "Google AI API Error (%s): %s",
                upstream.status_code,
                _redact(json.dumps(response_data), api_key)
            )
            # Repassa a mensagem do Google para o frontend
            message = response_data["error"]["message"]
            return _json_response(upstream.status_code, {"error": f"Google AI API Error: {message}"})

        return _json_response(200, {"text": extract_text(response_data)})

    except Exception as e:
        logger.error("Erro no proxy do Gemini: %s: %s", type(e).__name__, _redact(str(e), api_key))
        return _json_response(500, {"error": "An internal server error occurred."})

    finally:
        # Sessão compartilhada: cookies não passam de uma invocação para outra
        session.cookies.clear()
