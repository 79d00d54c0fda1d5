"""Client for the Gemini ``generateContent`` API used to pick clips."""

import requests
from typing import Optional, Dict, Any, List
from ..__version__ import __version__
from .models import (
    Part,
    Content,
    GenerationConfig,
    GenerateContentRequest,
    ClipCandidate,
    ApiError,
    AuthenticationError,
    RateLimitError,
    ClipSelectionError,
    parse_clip_candidates,
)

# Convenience aliases accepted for the model name
MODEL_ALIASES = {
    "gemini-2.5-pro-latest": "gemini-2.5-pro",
    "gemini-2.5-flash-latest": "gemini-2.5-flash",
    "gemini-2.5-flash-lite-latest": "gemini-2.5-flash-lite",
    "gemini-2.0-flash-latest": "gemini-2.0-flash",
    "gemini-2.0-flash-lite-latest": "gemini-2.0-flash-lite",
    "gemini-1.5-pro-latest": "gemini-1.5-pro",
    "gemini-1.5-flash-latest": "gemini-1.5-flash",
}


class ClipSelectorClient:
    """Client that asks an LLM to pick clip ranges from a transcript."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://generativelanguage.googleapis.com",
        model: str = "gemini-1.5-pro",
        session: Optional[requests.Session] = None,
        timeout: float = 60.0,
    ):
        """
        Initialize the API client.

        Args:
            api_key: Gemini API key
            base_url: Base URL for the API
            model: Model name or one of the ``-latest`` aliases
            session: Optional requests session to use
            timeout: Request timeout in seconds
        """
        if not api_key:
            raise ValueError("api_key is required")

        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = MODEL_ALIASES.get(model, model)
        self.session = session or requests.Session()
        self.timeout = timeout

        self.session.headers.update(
            {"User-Agent": f"clipcomposer-python/{__version__}"}
        )

    def _request(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        """Make a request to the API with error handling."""
        url = f"{self.base_url}{endpoint}"

        # Set timeout if not provided
        if "timeout" not in kwargs:
            kwargs["timeout"] = self.timeout
        params = kwargs.pop("params", {}) or {}
        params["key"] = self.api_key

        try:
            response = self.session.request(method, url, params=params, **kwargs)

            if response.status_code >= 400:
                try:
                    error_data = response.json()
                    error = error_data.get("error", {})
                    error_message = (
                        error.get("message") if isinstance(error, dict) else error
                    ) or f"HTTP {response.status_code}"
                except (ValueError, requests.exceptions.JSONDecodeError):
                    error_data = None
                    error_message = f"HTTP {response.status_code}"

                if response.status_code in (401, 403):
                    raise AuthenticationError(
                        f"Invalid API key: {error_message}",
                        response.status_code,
                        error_data,
                    )
                elif response.status_code == 429:
                    raise RateLimitError(
                        error_message, response.status_code, error_data
                    )
                raise ApiError(
                    f"Gemini API error {response.status_code}: {error_message}",
                    response.status_code,
                    error_data,
                )

            return response.json()

        except requests.exceptions.Timeout:
            raise ApiError(f"Request timed out after {self.timeout} seconds")
        except requests.exceptions.ConnectionError:
            raise ApiError("Failed to connect to the API")
        except requests.exceptions.RequestException as e:
            raise ApiError(f"Request failed: {str(e)}")
        except ValueError as e:
            raise ApiError(f"Invalid JSON response: {e}")

    def generate(
        self,
        prompt: str,
        transcript: str,
        temperature: Optional[float] = None,
        json_output: bool = True,
    ) -> Dict[str, Any]:
        """
        Send the prompt and transcript as two text parts of one user message.

        Args:
            prompt: Instructions for the model
            transcript: Transcript text (usually SRT)
            temperature: Optional sampling temperature
            json_output: Ask for an ``application/json`` response

        Returns:
            Raw generateContent response
        """
        if not prompt or not transcript:
            raise ValueError("prompt and transcript are required")

        config = None
        if temperature is not None or json_output:
            config = GenerationConfig(
                temperature=temperature,
                response_mime_type="application/json" if json_output else None,
            )
        req = GenerateContentRequest(
            contents=[Content(parts=[Part(text=prompt), Part(text=transcript)])],
            generation_config=config,
        )
        return self._request(
            "POST",
            f"/v1beta/models/{self.model}:generateContent",
            json=req.model_dump(by_alias=True, exclude_none=True),
        )

    @staticmethod
    def response_text(response: Dict[str, Any]) -> str:
        """
        Concatenate the text parts of the first candidate.

        Raises:
            ClipSelectionError: If the response holds no text
        """
        candidates = response.get("candidates") or []
        if not candidates:
            feedback = response.get("promptFeedback")
            raise ClipSelectionError(
                f"Clip selector returned no candidates: {feedback}",
                response_data=response,
            )

        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts)
        if not text.strip():
            raise ClipSelectionError(
                "Clip selector returned an empty answer", response_data=response
            )
        return text

    def select_clips(
        self, prompt: str, transcript: str, temperature: Optional[float] = None
    ) -> List[ClipCandidate]:
        """
        Ask the model for clip ranges.

        Args:
            prompt: Instructions describing what to look for
            transcript: Transcript text
            temperature: Optional sampling temperature

        Returns:
            Clip candidates in the order the model gave them
        """
        response = self.generate(prompt, transcript, temperature=temperature)
        return parse_clip_candidates(self.response_text(response))
