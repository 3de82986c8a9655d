"""
Prompt construction for grounded SMS classification.

Author: Yobie Benjamin
Date: 2026-10-19
"""

from pathlib import Path
from typing import List, Optional, Sequence

from loguru import logger

from smsguard.processors.text.types import ReferenceExample
from smsguard.utils.logging import preview

LEAN_HEADER = """## GOAL ##
Classify SMS as 'smishing' or 'benign' based on intent to deceive.

## ROLE ##
SMS cybersecurity analyst detecting fraudulent attempts to gain sensitive information or induce clicks on malicious links.

## DEFINITIONS ##
- 'Smishing': Fraudulent SMS aiming to deceive (malicious links, credential requests, impersonation)
- 'Benign': Legitimate SMS without fraudulent intent"""

LEAN_FOOTER = """## OUTPUT FORMAT ##
## Classification: smishing or benign
## Explanation: [Key indicators - max 25 words]
## Counterfactual: [Minimal change to flip intent]"""

DEFAULT_TEMPLATE = """## GOAL ##
Classify SMS messages as 'smishing' or 'benign' based solely on **intent to deceive or defraud**, not on emotion, tone, or urgency.

## ROLE ##
You are an SMS cybersecurity analyst specializing in detecting benign and SMS phishing with a focus on verifiable fraudulent attempts to gain sensitive information (e.g. personal identity information, passwords, credentials, financial details, account access) or to induce clicks on demonstrably malicious links or call a number leading to fraud or compromise.

## DEFINITIONS ##
- 'Smishing': A fraudulent SMS aiming to deceive the recipient into doing harm to themselves (e.g., clicking a malicious link, sharing financial and identity credentials, sending money).

- 'Benign': a legitimate and harmless SMS that does not explicitly seek to defraud and phish for sensitive information. This includes casual, personal, informal, or conversational messages, even if they contain slang, emotional language, express urgency, or are socially inappropriate, as long as they lack a direct, verifiable fraudulent intent related to financial or personal identity data compromise.

## GUIDELINES ##
The purpose of the message is paramount to classify the message: Is it trying to defraud or steal sensitive information/money, or is it a normal, albeit informal or urgent, communication?
1. Classify only if there is a clear **malicious objective** like phishing, impersonation, or trickery.
2. Do **not** classify based on:
   - Flirtation or emotional tone
   - Urgency or imperative verbs alone
   - Mentions of money, sex, or violence if not tied to deception
   - Personal or sensitive questions *without* an obvious fraud tactic

## COUNTERFACTUAL RULE ##
You must provide a counterfactual. The counterfactual must be the **minimum change** that removes or adds **intent to deceive**. Not tone. Not formatting. Not urgency.

## EXAMPLES ##
{example_block}

## INPUT MESSAGE ##
"{sms_text}"

## OUTPUT FORMAT ##
## Classification: smishing or benign
## Explanation: Highlight only the **intent-driven clues** (e.g., impersonation, deceptive link, fraudulent ask). Avoid tone-based reasoning, no more than 35 words.
## Counterfactual: [Minimal, plausible change that flips **intent**, e.g. remove phishing link, remove impersonation, add credential request]"""

FALLBACK_TEMPLATE = """Analyze the following SMS message and classify it as either "BENIGN" or "SMISHING".

SMS: "{sms_text}"

Consider these indicators for smishing:
- Urgent requests for personal information
- Suspicious links or phone numbers
- Requests for immediate action
- Offers that seem too good to be true
- Threats or pressure tactics
- Requests for financial information

Respond with only: BENIGN or SMISHING"""

EXPLANATION_TEMPLATE = """Explain why this SMS message is classified as smishing:

From: {sender}
Message: {body}

Provide a brief explanation of the suspicious elements detected in less than 2 sentences."""


def build_examples_block(
    benign_examples: Sequence[ReferenceExample],
    smishing_examples: Sequence[ReferenceExample],
) -> str:
    """
    Render retrieved examples as labeled lines.

    Benign lines come first; a single blank line separates the two
    groups only when both are present.
    """
    groups = []
    if benign_examples:
        groups.append("\n".join(f'benign: "{ex.text}"' for ex in benign_examples))
    if smishing_examples:
        groups.append("\n".join(f'smishing: "{ex.text}"' for ex in smishing_examples))
    return "\n\n".join(groups)


class PromptBuilder:
    """
    Builds classification prompts grounded with retrieved examples.

    Two styles are supported: "lean" renders a short fixed template with
    at most `max_examples_per_class` examples per class to bound prompt
    length; "template" renders the loaded (or built-in) detailed template
    with every retrieved example.
    """

    def __init__(
        self,
        template_path: Optional[Path] = None,
        style: str = "lean",
        max_examples_per_class: int = 1,
    ):
        """
        Initialize prompt builder.

        Args:
            template_path: Optional markdown template with {example_block}
                and {sms_text} placeholders
            style: "lean" or "template"
            max_examples_per_class: Example cap for the lean style
        """
        if style not in ("lean", "template"):
            raise ValueError(f"Unknown prompt style: {style}")

        self.template_path = Path(template_path) if template_path else None
        self.style = style
        self.max_examples_per_class = max_examples_per_class
        self._template = DEFAULT_TEMPLATE
        self._initialized = False

    @classmethod
    def from_settings(cls, settings) -> "PromptBuilder":
        """Create builder from `SMSGuardSettings`."""
        retrieval = settings.retrieval
        return cls(
            template_path=retrieval.prompt_template_file,
            style=retrieval.prompt_style,
            max_examples_per_class=retrieval.prompt_examples_per_class,
        )

    def initialize(self) -> bool:
        """
        Load the prompt template.

        A template path that does not exist falls back to the built-in
        template; one that exists but cannot be read fails.

        Returns:
            True if a template is available
        """
        if self.template_path is None or not self.template_path.exists():
            if self.template_path is not None:
                logger.warning(f"Prompt template not found at {self.template_path}, using built-in")
            self._template = DEFAULT_TEMPLATE
            self._initialized = True
            return True

        try:
            self._template = self.template_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Error loading prompt template: {e}")
            self._initialized = False
            return False

        self._initialized = True
        logger.info(f"Prompt template loaded from {self.template_path}")
        return True

    def is_ready(self) -> bool:
        return self._initialized

    def build_prompt(
        self,
        sms_text: str,
        benign_examples: Sequence[ReferenceExample],
        smishing_examples: Sequence[ReferenceExample],
    ) -> str:
        """
        Build a classification prompt with similar examples.

        Args:
            sms_text: Message to classify
            benign_examples: Retrieved benign examples, most similar first
            smishing_examples: Retrieved smishing examples, most similar first

        Returns:
            Prompt text
        """
        logger.debug(f"Building prompt for SMS: \"{preview(sms_text)}\"")
        logger.debug(
            f"Input examples - Benign: {len(benign_examples)}, "
            f"Smishing: {len(smishing_examples)}"
        )

        if self.style == "template":
            prompt = self._build_from_template(sms_text, benign_examples, smishing_examples)
        else:
            prompt = self._build_lean(sms_text, benign_examples, smishing_examples)

        logger.debug(f"Final prompt length: {len(prompt)} characters")
        return prompt

    def build_fallback_prompt(self, sms_text: str) -> str:
        """Example-free prompt used when no embedding is available."""
        return FALLBACK_TEMPLATE.format(sms_text=sms_text)

    def build_explanation_prompt(self, sender: str, body: str) -> str:
        """Short prompt asking why a message is smishing."""
        return EXPLANATION_TEMPLATE.format(sender=sender, body=body)

    def _build_lean(
        self,
        sms_text: str,
        benign_examples: Sequence[ReferenceExample],
        smishing_examples: Sequence[ReferenceExample],
    ) -> str:
        cap = self.max_examples_per_class
        examples_block = build_examples_block(benign_examples[:cap], smishing_examples[:cap])

        examples_section = "## EXAMPLES ##"
        if examples_block:
            examples_section += "\n" + examples_block

        sections: List[str] = [
            LEAN_HEADER,
            examples_section,
            f'## INPUT MESSAGE ##\n"{sms_text}"',
            LEAN_FOOTER,
        ]
        return "\n\n".join(sections)

    def _build_from_template(
        self,
        sms_text: str,
        benign_examples: Sequence[ReferenceExample],
        smishing_examples: Sequence[ReferenceExample],
    ) -> str:
        examples_block = build_examples_block(benign_examples, smishing_examples)
        # Plain replace: message text may contain braces
        prompt = self._template.replace("{example_block}", examples_block)
        prompt = prompt.replace("{sms_text}", sms_text)
        if not examples_block:
            while "\n\n\n" in prompt:
                prompt = prompt.replace("\n\n\n", "\n\n")
        return prompt
