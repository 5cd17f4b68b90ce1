# neurolens/assistant.py
"""Text-generation collaborator: explains a kernel or proposes one from a description.

Never used by the numeric core. Every failure surfaces as ExternalServiceUnavailable;
the session layer turns that into a readable fallback message.
"""
import http.client, json, os, urllib.request
from .errors import ExternalServiceUnavailable
from .kernels import as_kernel, format_kernel

MODEL_NAME = "gemini-2.5-flash"
ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
KEY_VARS = ("API_KEY", "GEMINI_API_KEY")
UA = "neurolens/0.1 (+urllib)"

EXPLAIN_PROMPT = """
You are an expert in Deep Learning and Computer Vision.
Analyze the following 3x3 Convolutional Kernel matrix:
{matrix}

Explain concisely (in {language}):
1. What visual features this kernel typically extracts (e.g., vertical edges, blur, sharpening).
2. How the mathematical values contribute to this effect.
Keep the explanation under 150 words and easy to understand.
"""

SUGGEST_PROMPT = """
Generate a 3x3 Convolutional Kernel matrix based on the user's description.
User Description: "{description}"

Output a JSON object with:
1. 'matrix': A 3x3 array of numbers (e.g., [[0,0,0],[0,1,0],[0,0,0]]).
2. 'explanation': A short sentence explaining what this kernel does.

Common requests might involve edge detection, blurring, sharpening, or custom directional gradients.
Ensure the matrix values are reasonable for image processing (usually between -10 and 10, or fractions for blur).
"""

SUGGEST_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "matrix": {"type": "ARRAY", "items": {"type": "ARRAY", "items": {"type": "NUMBER"}}},
        "explanation": {"type": "STRING"},
    },
}


class KernelSuggestion:
    def __init__(self, kernel, explanation):
        self.kernel = as_kernel(kernel)
        self.explanation = explanation


class KernelAssistant:
    """Capability interface. Both operations raise ExternalServiceUnavailable when they cannot answer."""

    def explain(self, kernel):
        raise NotImplementedError

    def suggest(self, description):
        raise NotImplementedError


class OfflineAssistant(KernelAssistant):
    def explain(self, kernel):
        raise ExternalServiceUnavailable("no text-generation service configured")

    def suggest(self, description):
        raise ExternalServiceUnavailable("no text-generation service configured")


def api_key_from_env(env=None):
    env = os.environ if env is None else env
    for var in KEY_VARS:
        if env.get(var):
            return env[var]
    return None


class GeminiAssistant(KernelAssistant):
    def __init__(self, api_key=None, model=MODEL_NAME, timeout=30, language="Chinese"):
        self.api_key = api_key if api_key is not None else api_key_from_env()
        self.model = model
        self.timeout = timeout
        self.language = language

    def _generate(self, prompt, generation_config=None):
        if not self.api_key:
            raise ExternalServiceUnavailable("API key not configured")
        body = {"contents": [{"parts": [{"text": prompt}]}]}
        if generation_config:
            body["generationConfig"] = generation_config
        req = urllib.request.Request(
            ENDPOINT.format(model=self.model),
            data=json.dumps(body).encode("utf-8"),
            headers={"Content-Type": "application/json",
                     "User-Agent": UA,
                     "x-goog-api-key": self.api_key},
            method="POST")
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as r:
                payload = json.loads(r.read().decode("utf-8"))
        except (OSError, http.client.HTTPException) as e:  # URLError, HTTPError, timeouts, resets
            raise ExternalServiceUnavailable(f"request to {self.model} failed: {e}") from e
        except ValueError as e:
            raise ExternalServiceUnavailable(f"malformed response from {self.model}") from e
        return _response_text(payload)

    def explain(self, kernel):
        prompt = EXPLAIN_PROMPT.format(matrix=format_kernel(kernel), language=self.language)
        return self._generate(prompt)

    def suggest(self, description):
        text = self._generate(SUGGEST_PROMPT.format(description=description),
                              {"responseMimeType": "application/json",
                               "responseSchema": SUGGEST_SCHEMA})
        try:
            result = json.loads(text)
            return KernelSuggestion(result["matrix"], str(result.get("explanation") or ""))
        except (ValueError, KeyError, TypeError) as e:
            # ConfigurationError (bad matrix shape) is a ValueError too
            raise ExternalServiceUnavailable(f"unusable kernel suggestion: {e}") from e


def _response_text(payload):
    # candidates[0].content.parts[*].text
    try:
        parts = payload["candidates"][0]["content"]["parts"]
        text = "".join(p.get("text", "") for p in parts)
    except (KeyError, IndexError, TypeError, AttributeError) as e:
        raise ExternalServiceUnavailable("response has no text") from e
    if not text.strip():
        raise ExternalServiceUnavailable("empty response")
    return text
