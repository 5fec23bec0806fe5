# src/config/model_catalog.py — v1
"""Declarative model catalog.

capability -> use case -> provider -> list of model entries. Capability
limits use snake_case keys matching registry.models.ModelCapabilities.
Lower priority numbers are preferred.
"""

from __future__ import annotations

from typing import Any

_GPT_IMAGE_SIZES = ["1024x1024", "1792x1024", "1024x1792"]

_GEMINI_PRO: dict[str, Any] = {
    "id": "gemini-1.5-pro",
    "name": "Gemini 1.5 Pro",
    "tier": "premium",
    "priority": 2,
    "status": "active",
    "capabilities": {
        "max_tokens": 32000,
        "context_window": 1_000_000,
        "multimodal": True,
        "languages": ["en", "es", "fr", "de", "pt", "it"],
    },
    "pricing": {"per_1k_tokens": 0.001},
}

MODEL_CATALOG: dict[str, dict[str, dict[str, list[dict[str, Any]]]]] = {
    "video-generation": {
        "text-to-video": {
            "google": [
                {
                    "id": "veo-3.1-generate-001",
                    "name": "Veo 3.1 Stable",
                    "tier": "premium",
                    "priority": 1,
                    "status": "active",
                    "description": "Latest stable Veo model with highest quality output",
                    "capabilities": {
                        "max_duration": 8,
                        "resolutions": ["720p", "1080p"],
                        "aspect_ratios": ["16:9", "9:16", "1:1"],
                        "audio": True,
                        "quality": ["standard", "high"],
                        "max_prompt_length": 2048,
                    },
                    "pricing": {"per_second": 0.05},
                },
                {
                    "id": "veo-3.1-fast-generate-001",
                    "name": "Veo 3.1 Fast",
                    "tier": "standard",
                    "priority": 2,
                    "status": "active",
                    "description": "Faster generation with good quality",
                    "capabilities": {
                        "max_duration": 6,
                        "resolutions": ["720p", "1080p"],
                        "aspect_ratios": ["16:9", "9:16"],
                        "audio": True,
                        "quality": ["standard"],
                        "max_prompt_length": 1024,
                    },
                    "pricing": {"per_second": 0.03},
                },
                {
                    "id": "veo-3.0-generate-001",
                    "name": "Veo 3.0",
                    "tier": "standard",
                    "priority": 3,
                    "status": "deprecated",
                    "description": "Legacy model for basic video generation",
                    "capabilities": {
                        "max_duration": 5,
                        "resolutions": ["720p"],
                        "aspect_ratios": ["16:9"],
                        "audio": False,
                        "quality": ["standard"],
                        "max_prompt_length": 512,
                    },
                    "pricing": {"per_second": 0.02},
                },
            ],
            "runway": [
                {
                    "id": "gen-3-alpha",
                    "name": "Runway Gen-3 Alpha",
                    "tier": "premium",
                    "priority": 1,
                    "status": "planned",
                    "description": "Advanced video generation with motion control",
                    "capabilities": {
                        "max_duration": 10,
                        "resolutions": ["720p", "1080p", "4k"],
                        "aspect_ratios": ["16:9", "9:16", "1:1"],
                        "audio": False,
                        "quality": ["high", "ultra"],
                    },
                    "pricing": {"per_second": 0.08},
                },
            ],
        },
        "image-to-video": {
            "google": [
                {
                    "id": "veo-3.1-i2v-generate-001",
                    "name": "Veo 3.1 Image-to-Video",
                    "tier": "premium",
                    "priority": 1,
                    "status": "active",
                    "description": "Transform static images into dynamic videos",
                    "capabilities": {
                        "max_duration": 8,
                        "resolutions": ["720p", "1080p"],
                        "aspect_ratios": ["16:9", "9:16", "1:1"],
                        "audio": True,
                        "quality": ["standard", "high"],
                        "input_formats": ["jpeg", "png", "webp"],
                    },
                    "pricing": {"per_second": 0.07},
                },
            ],
        },
    },
    "image-generation": {
        "text-to-image": {
            "azure": [
                {
                    "id": "gpt-image-1",
                    "name": "GPT Image 1 (Azure)",
                    "tier": "premium",
                    "priority": 1,
                    "status": "active",
                    "capabilities": {
                        "resolutions": _GPT_IMAGE_SIZES,
                        "quality": ["low", "standard", "high", "ultra"],
                        "max_prompt_length": 4000,
                        "styles": ["vivid", "natural"],
                    },
                    "pricing": {"per_image": 0.04},
                },
            ],
            "google": [
                {
                    "id": "imagen-3.0",
                    "name": "Imagen 3.0",
                    "tier": "standard",
                    "priority": 2,
                    "status": "active",
                    "capabilities": {
                        "resolutions": ["512x512", "1024x1024", "1536x1536"],
                        "quality": ["standard", "high"],
                        "max_prompt_length": 2048,
                        "multiple_images": True,
                    },
                    "pricing": {"per_image": 0.02},
                },
            ],
        },
        "image-to-image": {
            "azure": [
                {
                    "id": "gpt-image-1",
                    "name": "GPT Image 1 Edit (Azure)",
                    "tier": "premium",
                    "priority": 1,
                    "status": "active",
                    "capabilities": {
                        "resolutions": _GPT_IMAGE_SIZES,
                        "max_prompt_length": 4000,
                        "edit_modes": ["inpainting", "outpainting", "variation"],
                    },
                    "pricing": {"per_image": 0.08},
                },
            ],
        },
        "multiple-images": {
            "azure": [
                {
                    "id": "gpt-image-1",
                    "name": "GPT Image 1 Batch (Azure)",
                    "tier": "premium",
                    "priority": 1,
                    "status": "active",
                    "capabilities": {
                        "max_count": 10,
                        "resolutions": _GPT_IMAGE_SIZES,
                        "quality": ["standard", "high"],
                        "max_prompt_length": 4000,
                    },
                    "pricing": {"per_image": 0.04},
                },
            ],
        },
    },
    "text-generation": {
        "conversation": {
            "google": [dict(_GEMINI_PRO)],
            "azure": [
                {
                    "id": "gpt-4.1",
                    "name": "GPT-4.1 (Azure OpenAI)",
                    "tier": "premium",
                    "priority": 1,
                    "status": "active",
                    "description": "GPT-4.1 via Azure OpenAI",
                    "capabilities": {
                        "max_tokens": 4096,
                        "context_window": 32768,
                        "streaming": True,
                    },
                    "pricing": {"per_1k_tokens": 0.03},
                },
                {
                    "id": "gpt-4o-mini",
                    "name": "GPT-4o Mini (Azure OpenAI)",
                    "tier": "standard",
                    "priority": 3,
                    "status": "active",
                    "description": "Fast and efficient model for high-volume applications",
                    "capabilities": {
                        "max_tokens": 4096,
                        "context_window": 16384,
                        "streaming": True,
                    },
                    "pricing": {"per_1k_tokens": 0.0015},
                },
            ],
        },
        "content-creation": {
            "google": [dict(_GEMINI_PRO)],
            "azure": [
                {
                    "id": "gpt-4.1",
                    "name": "GPT-4.1 Content Creator (Azure OpenAI)",
                    "tier": "premium",
                    "priority": 1,
                    "status": "active",
                    "capabilities": {
                        "max_tokens": 4096,
                        "content_types": [
                            "blog", "marketing", "social", "email", "product_description",
                        ],
                        "tones": ["professional", "casual", "friendly", "persuasive"],
                    },
                    "pricing": {"per_1k_tokens": 0.03},
                },
            ],
        },
    },
}
