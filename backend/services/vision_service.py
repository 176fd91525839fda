import base64
import json
import logging

from flask import current_app
from groq import Groq

logger = logging.getLogger('vision_service')


class VisionError(Exception):
    """The vision model could not produce a usable diagnosis."""


class VisionService:
    SAMPLE_ANALYSIS = {
        "disease": "Early Blight",
        "confidence": 0.87,
        "severity": "moderate",
        "recommendations": {
            "en": [
                "Remove affected leaves",
                "Apply fungicide (copper-based)",
                "Improve air circulation",
                "Reduce leaf wetness",
            ],
            "hi": ["प्रभावित पत्तियों को हटाएं", "कवकनाशी (तांबा-आधारित) लगाएं", "हवा का संचार सुधारें", "पत्तियों की नमी कम करें"],
            "mr": ["प्रभावित पाने काढून टाका", "बुरशीनाशक (तांबे-आधारित) वापरा", "हवेचा प्रवाह सुधारा", "पानांची ओलसरपणा कमी करा"],
        },
    }

    @staticmethod
    def client():
        """A client bound to the current app's key."""
        return Groq(api_key=current_app.config['GROQ_API_KEY'])

    @staticmethod
    def is_configured():
        return bool(current_app.config.get('GROQ_API_KEY'))

    @staticmethod
    def analyze_leaf_image(image_bytes, crop_name="Crop", mime_type="image/jpeg"):
        """
        Uses a Llama vision model on Groq to identify disease from a leaf image.
        Returns {disease, confidence (0-1), severity, recommendations{en,hi,mr}}.
        Raises VisionError when the model call or its JSON fails.
        """
        image_b64 = base64.b64encode(image_bytes).decode('ascii')
        prompt = f"""
        Analyze this image of a {crop_name} leaf.
        Identify any disease, pest or nutrient deficiency.

        Respond ONLY in the following JSON format:
        {{
            "disease": "Name of disease/pest identified, or Healthy",
            "confidence": 0.0 to 1.0,
            "severity": "none/mild/moderate/severe",
            "recommendations": {{
                "en": ["up to 4 short actions in English"],
                "hi": ["the same actions in Hindi"],
                "mr": ["the same actions in Marathi"]
            }}
        }}
        """

        try:
            completion = VisionService.client().chat.completions.create(
                model=current_app.config['GROQ_VISION_MODEL'],
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": prompt},
                            {
                                "type": "image_url",
                                "image_url": {"url": f"data:{mime_type};base64,{image_b64}"},
                            },
                        ],
                    }
                ],
                temperature=0.1,
                max_tokens=512,
                response_format={"type": "json_object"},
            )
            result = json.loads(completion.choices[0].message.content)
            return {
                "disease": result["disease"],
                "confidence": float(result.get("confidence") or 0),
                "severity": result.get("severity", "unknown"),
                "recommendations": result.get("recommendations") or {},
            }
        except Exception as e:
            logger.error(f"Vision API Error: {e}")
            raise VisionError(str(e)) from e
