from openai import OpenAI
import google.generativeai as genai
from outreach_pipeline.config import settings
from outreach_pipeline.core.exceptions import PersonalizationFailed
import logging
import time
from typing import Optional

logger = logging.getLogger(__name__)

class PersonalizationService:
    def __init__(self):
        self.provider = "openai"
        self.client = None
        self.model = settings.AI_MODEL

        # Gemini preferred when configured
        if settings.GEMINI_API_KEY:
            try:
                genai.configure(api_key=settings.GEMINI_API_KEY)
                self.client = genai.GenerativeModel(settings.AI_MODEL)
                self.provider = "gemini"
                logger.info("Personalization initialized with Gemini")
            except Exception as e:
                logger.error(f"Failed to initialize Gemini: {e}")

        # Fallback to OpenAI if Gemini not set but OpenAI is
        if not self.client and settings.OPENAI_API_KEY:
            try:
                self.client = OpenAI(api_key=settings.OPENAI_API_KEY)
                self.provider = "openai"
                logger.info("Personalization initialized with OpenAI")
            except Exception as e:
                logger.error(f"Failed to initialize OpenAI: {e}")

    def _generate_content(self, prompt: str, model: Optional[str] = None) -> str:
        """Helper to generate text from either provider."""
        if not self.client:
            raise PersonalizationFailed("AI client not initialized")

        if self.provider == "gemini":
            client = self.client
            if model and model != self.model:
                client = genai.GenerativeModel(model)

            max_retries = 3
            base_delay = 60  # Seconds

            for attempt in range(max_retries):
                try:
                    response = client.generate_content(prompt)
                    return response.text.strip()
                except Exception as e:
                    is_rate_limit = "429" in str(e) or "quota" in str(e).lower()
                    if is_rate_limit and attempt < max_retries - 1:
                        logger.warning(f"Gemini Rate Limit Hit. Waiting {base_delay}s... (Attempt {attempt+1}/{max_retries})")
                        time.sleep(base_delay)
                    else:
                        logger.error(f"Gemini generation failed: {e}")
                        raise

        response = self.client.chat.completions.create(
            model=model or self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=0.7
        )
        return response.choices[0].message.content.strip()

    def generate(
        self,
        template: str,
        contact_context: dict,
        profile_context: dict,
        max_chars: int,
        model: Optional[str] = None,
        note: str = ""
    ) -> str:
        """
        Rewrite a template for one contact.
        Raises PersonalizationFailed; the caller keeps the raw template.
        """
        company = contact_context.get("company") or {}
        prompt = f"""
        You are writing a LinkedIn outreach message. Personalize the TEMPLATE for the
        recipient below. Keep its structure, tone and call to action.

        TEMPLATE:
        {template}

        RECIPIENT:
        Name: {contact_context.get('name')}
        Title: {contact_context.get('title')}
        Company: {company.get('name', 'Unknown Company')}
        Industry: {company.get('industry') or ''}
        Company size: {company.get('employee_count') or ''}
        Location: {company.get('location') or ''}
        About the company: {company.get('description') or ''}

        TARGET PROFILE:
        Roles: {', '.join(r for r in (profile_context.get('roles') or []) if r)}
        Pain points: {'; '.join(p for p in (profile_context.get('pain_points') or []) if p)}

        NOTES FROM THE SENDER:
        {note or 'None'}

        RULES:
        - At most {max_chars} characters.
        - Output only the message text, no quotes or commentary.
        """

        try:
            text = self._generate_content(prompt, model)
        except PersonalizationFailed:
            raise
        except Exception as e:
            logger.error(f"Personalization failed: {e}")
            raise PersonalizationFailed(str(e))

        if not text:
            raise PersonalizationFailed("empty response")
        return text

personalization_service = PersonalizationService()
