"""System prompt templates for common vision tasks."""

from __future__ import annotations

from dataclasses import dataclass

from .exceptions import InvalidInputError

BASE_SYSTEM_PROMPT = """You are a vision analysis assistant with access to image data.

Your task is to analyze images accurately and provide helpful responses based on what you see.

Guidelines:
1. Be precise and detailed in your observations
2. When coordinates or measurements are requested, provide them in the format specified
3. If an image is unclear or ambiguous, acknowledge the limitations
4. Convert any complex structured data to the requested format
5. Be helpful and follow the specific instructions provided by the user

Remember: You are providing visual information to another AI system, so clarity and structure are important."""

JSON_OUTPUT_INSTRUCTION = (
    "Respond with a single valid JSON document and no surrounding prose."
)

DEFAULT_TEMPLATE_ID = "general-description"


@dataclass(frozen=True)
class PromptTemplate:
    id: str
    name: str
    description: str
    use_cases: tuple[str, ...]
    body: str

    @property
    def text(self) -> str:
        return f"{BASE_SYSTEM_PROMPT}\n\n{self.body}"

    def summary(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "useCases": list(self.use_cases),
        }


GENERAL_DESCRIPTION = PromptTemplate(
    id="general-description",
    name="General Description",
    description="Provide a detailed description of the image",
    use_cases=("image description", "scene analysis", "object identification"),
    body="""Analyze this image and provide a comprehensive description. Include:
- Main objects and their characteristics
- Setting or environment
- Colors, lighting, and composition
- Any text or symbols visible
- Overall mood or atmosphere

Focus on observable details and be specific.""",
)

UI_ANALYSIS = PromptTemplate(
    id="ui-analysis",
    name="UI Analysis",
    description="Analyze UI prototypes and screenshots",
    use_cases=("UI design analysis", "interface review", "component identification"),
    body="""You are analyzing a UI design or interface screenshot. Extract structured information about the UI elements and layout.

Please provide:
1. **Overall Layout**: screen dimensions (if apparent), layout type, main sections and their relative positions
2. **UI Components**: every interactive element with its type, text or label, approximate position and size, and visual style
3. **Visual Hierarchy**: primary actions, supporting elements, navigation structure
4. **Design Patterns**: cards, lists, modals, responsive and accessibility considerations
5. **Content Analysis**: text and typography, images and media, icons and symbols

For positions use percentage-based or pixel coordinates in the form
{x: 10, y: 20, width: 30, height: 15}.

Be precise about relationships between elements and their spatial arrangement.""",
)

OBJECT_DETECTION = PromptTemplate(
    id="object-detection",
    name="Object Detection and Localization",
    description="Detect and locate objects in the image with coordinates",
    use_cases=("object detection", "element positioning", "bounding box localization"),
    body="""Identify and locate specific objects or elements in the image. For each detected object, provide:

1. **Object Information**: class/type, description, confidence (if applicable)
2. **Position and Size**: bounding box {x: 10, y: 20, width: 30, height: 15} with origin (0,0) at top-left and units as percentage of image dimensions, or a relative position (e.g. "center", "top-right")
3. **Additional Details**: color, size, relationships to other objects, associated text or labels

If multiple objects of the same type exist, list them all with their unique positions.

Please format the response as structured data that can be easily parsed.""",
)

OCR = PromptTemplate(
    id="ocr",
    name="OCR and Text Extraction",
    description="Extract text from images with positioning",
    use_cases=("text extraction", "OCR", "document scanning"),
    body="""Extract all visible text from the image with the following details:

1. **Text Content**: all readable text, keeping the original structure, grouping and formatting
2. **Text Positioning**: approximate coordinates per element, e.g. {text: "content", x: 10, y: 20, width: 30, height: 15}
3. **Additional Information**: font characteristics, text and background color, languages present
4. **Structured Output**: logical organization, grouped related elements, hierarchy (titles, body text, captions)

Present the extracted information in a clear, structured format that preserves the original layout information.""",
)

STRUCTURED_EXTRACTION = PromptTemplate(
    id="structured-extraction",
    name="Structured Information Extraction",
    description="Extract structured data according to a specific schema",
    use_cases=("data extraction", "form processing", "structured analysis"),
    body="""Extract structured information from the image following the user's specified schema or format. Focus on:

1. **Identifying Key Information**: all relevant data points, their relationships and context
2. **Data Validation**: data types and formats, missing or ambiguous values, likely errors
3. **Output Structure**: follow the requested JSON schema or format exactly with appropriate data types
4. **Quality Assurance**: double-check values, give confidence levels when uncertain, note assumptions

If specific fields or format are requested in the user prompt, prioritize those requirements.""",
)

TEMPLATES: dict[str, PromptTemplate] = {
    t.id: t
    for t in (GENERAL_DESCRIPTION, UI_ANALYSIS, OBJECT_DETECTION, OCR, STRUCTURED_EXTRACTION)
}

# Checked in order; first hit wins.
_KEYWORDS: list[tuple[tuple[str, ...], str]] = [
    (("ui", "interface", "prototype"), "ui-analysis"),
    (("detect", "locate", "position"), "object-detection"),
    (("ocr", "text"), "ocr"),
    (("json", "structured", "schema"), "structured-extraction"),
    (("describe", "what", "explain"), "general-description"),
]


def list_templates() -> list[dict]:
    return [t.summary() for t in TEMPLATES.values()]


def auto_select_template(prompt: str) -> str:
    """Pick a template id from keywords in the user prompt."""
    lowered = prompt.lower()
    for keywords, template_id in _KEYWORDS:
        if any(k in lowered for k in keywords):
            return template_id
    return DEFAULT_TEMPLATE_ID


def get_system_prompt(template_id: str, custom_instructions: str | None = None) -> str:
    template = TEMPLATES.get(template_id)
    if template is None:
        raise InvalidInputError(
            f"Unknown template ID: {template_id}",
            {"template": template_id, "availableTemplates": list(TEMPLATES)},
        )
    prompt = template.text
    if custom_instructions:
        prompt += f"\n\n=== Additional Instructions ===\n{custom_instructions}"
    return prompt


def build_prompt(
    template_id: str | None, user_prompt: str, output_format: str = "text"
) -> str:
    """System template + user request, auto-selecting the template if none given."""
    selected = template_id or auto_select_template(user_prompt)
    custom = JSON_OUTPUT_INSTRUCTION if output_format == "json" else None
    system_prompt = get_system_prompt(selected, custom)
    return f"{system_prompt}\n\n=== User Request ===\n{user_prompt}"
