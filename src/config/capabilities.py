# src/config/capabilities.py — v1
"""Declarative capability matrix.

Maps capability -> use case -> provider, with the fallback order and the
request fields each use case needs. Loaded by registry/capability_registry.py.
"""

from __future__ import annotations

from typing import Any

CAPABILITY_MATRIX: dict[str, dict[str, Any]] = {
    "video-generation": {
        "description": "AI-powered video generation from text or images",
        "use_cases": {
            "text-to-video": {
                "description": "Generate video content from text prompts",
                "providers": {
                    "google": {
                        "status": "active",
                        "models": [
                            "veo-3.1-generate-001",
                            "veo-3.1-fast-generate-001",
                            "veo-3.0-generate-001",
                        ],
                        "strengths": ["High quality", "Realistic motion", "Audio generation"],
                        "limitations": ["8 second max duration", "Limited aspect ratios"],
                        "cost_tier": "premium",
                    },
                    "runway": {
                        "status": "planned",
                        "models": ["gen-3-alpha"],
                        "strengths": ["Motion control", "Extended duration", "4K support"],
                        "limitations": ["No audio", "Higher cost"],
                        "cost_tier": "premium",
                    },
                },
                "fallback_order": ["google", "runway"],
                "requirements": {
                    "essential": ["prompt"],
                    "optional": ["duration", "resolution", "aspectRatio", "audio"],
                },
            },
            "image-to-video": {
                "description": "Animate static images into video content",
                "providers": {
                    "google": {
                        "status": "active",
                        "models": ["veo-3.1-i2v-generate-001"],
                        "strengths": ["Natural animation", "Preserves image quality"],
                        "limitations": ["Single image input", "8 second duration"],
                        "cost_tier": "premium",
                    },
                    "runway": {
                        "status": "planned",
                        "models": ["gen-3-alpha-i2v"],
                        "strengths": ["Advanced motion control"],
                        "limitations": ["Complex setup", "Higher cost"],
                        "cost_tier": "premium",
                    },
                },
                "fallback_order": ["google", "runway"],
                "requirements": {
                    "essential": ["prompt", "image"],
                    "optional": ["duration", "resolution", "motionIntensity"],
                },
            },
        },
    },
    "image-generation": {
        "description": "AI-powered image creation from text descriptions",
        "use_cases": {
            "text-to-image": {
                "description": "Generate images from text prompts",
                "providers": {
                    "azure": {
                        "status": "active",
                        "models": ["gpt-image-1"],
                        "strengths": ["High quality", "Enterprise security"],
                        "limitations": ["Content filters", "Rate limits"],
                        "cost_tier": "premium",
                    },
                    "google": {
                        "status": "active",
                        "models": ["imagen-3.0"],
                        "strengths": ["Photorealistic", "Text rendering"],
                        "limitations": ["Moderate resolution"],
                        "cost_tier": "standard",
                    },
                    "openai": {
                        "status": "planned",
                        "models": ["dall-e-3"],
                        "strengths": ["Creative interpretation", "Artistic styles"],
                        "limitations": ["Higher cost", "Content filters"],
                        "cost_tier": "premium",
                    },
                    "stability": {
                        "status": "planned",
                        "models": ["stable-diffusion-3"],
                        "strengths": ["Fast generation", "Multiple variations"],
                        "limitations": ["Inconsistent quality"],
                        "cost_tier": "budget",
                    },
                },
                "fallback_order": ["azure", "google", "openai", "stability"],
                "requirements": {
                    "essential": ["prompt"],
                    "optional": ["resolution", "style", "aspectRatio", "variations"],
                },
            },
            "image-to-image": {
                "description": "Transform or edit existing images",
                "providers": {
                    "azure": {
                        "status": "active",
                        "models": ["gpt-image-1"],
                        "strengths": ["High quality editing", "Style transfer"],
                        "limitations": ["Content filters", "Limited inpainting"],
                        "cost_tier": "premium",
                    },
                    "stability": {
                        "status": "planned",
                        "models": ["stable-diffusion-3-img2img"],
                        "strengths": ["Precise editing", "Inpainting"],
                        "limitations": ["Complex parameters"],
                        "cost_tier": "standard",
                    },
                },
                "fallback_order": ["azure", "stability"],
                "requirements": {
                    "essential": ["prompt", "image"],
                    "optional": ["strength", "guidance", "mask"],
                },
            },
            "multiple-images": {
                "description": "Generate multiple image variations from a single prompt",
                "providers": {
                    "azure": {
                        "status": "active",
                        "models": ["gpt-image-1"],
                        "strengths": ["Consistent quality", "Creative variations"],
                        "limitations": ["Max 10 images per request"],
                        "cost_tier": "premium",
                    },
                },
                "fallback_order": ["azure"],
                "requirements": {
                    "essential": ["prompt", "count"],
                    "optional": ["resolution", "style", "aspectRatio"],
                },
            },
        },
    },
    "text-generation": {
        "description": "AI-powered text creation and conversation",
        "use_cases": {
            "conversation": {
                "description": "Interactive chat and dialogue generation",
                "providers": {
                    "google": {
                        "status": "active",
                        "models": ["gemini-1.5-pro"],
                        "strengths": ["Large context", "Multimodal", "Reasoning"],
                        "limitations": ["Response time"],
                        "cost_tier": "standard",
                    },
                    "openai": {
                        "status": "planned",
                        "models": ["gpt-4", "gpt-4-turbo"],
                        "strengths": ["Code generation", "Creative writing"],
                        "limitations": ["Cost", "Rate limits"],
                        "cost_tier": "premium",
                    },
                    "azure": {
                        "status": "active",
                        "models": ["gpt-4o-mini", "gpt-4.1"],
                        "strengths": ["Enterprise security", "Fast response"],
                        "limitations": ["Regional deployment"],
                        "cost_tier": "standard",
                    },
                },
                "fallback_order": ["azure", "google", "openai"],
                "requirements": {
                    "essential": ["prompt"],
                    "optional": ["maxTokens", "temperature", "systemPrompt"],
                },
            },
            "content-creation": {
                "description": "Generate marketing copy, articles, and creative content",
                "providers": {
                    "google": {
                        "status": "active",
                        "models": ["gemini-1.5-pro"],
                        "strengths": ["Multiple languages", "Long form content"],
                        "limitations": ["Formal tone"],
                        "cost_tier": "standard",
                    },
                    "azure": {
                        "status": "active",
                        "models": ["gpt-4o-mini", "gpt-4.1"],
                        "strengths": ["Marketing copy", "Brand voice consistency"],
                        "limitations": ["Token limits"],
                        "cost_tier": "standard",
                    },
                },
                "fallback_order": ["azure", "google"],
                "requirements": {
                    "essential": ["prompt", "contentType"],
                    "optional": ["tone", "length", "audience"],
                },
            },
        },
    },
}
