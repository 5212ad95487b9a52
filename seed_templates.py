#!/usr/bin/env python3
"""
Template Seed Script for SkillWeave API
=======================================

Loads the starter template catalog. Does nothing when the templates table
already has rows.

Usage:
    python seed_templates.py
"""

import asyncio
import sys

from skillweave.core.database import AsyncSessionLocal, close_db, init_db
from skillweave.core.logging import configure_logging, get_logger
from skillweave.services import template_service

configure_logging(log_level="INFO", log_file="seed.log", enable_file=False)
logger = get_logger(__name__)


def _scheme(name, primary, secondary, accent):
    return {"name": name, "primary": primary, "secondary": secondary, "accent": accent,
            "background": "#FFFFFF", "text": "#1F2937"}


TEMPLATES = [
    {
        "name": "Modern Developer Portfolio",
        "category": "developer",
        "description": "A sleek, modern portfolio perfect for frontend developers and full-stack engineers",
        "difficulty": "intermediate",
        "thumbnail_url": "/templates/modern-developer/thumbnail.jpg",
        "preview_image_url": "/templates/modern-developer/preview1.jpg",
        "features": ["Responsive Design", "Dark Mode", "Smooth Animations", "Project Gallery"],
        "tags": ["modern", "developer", "responsive", "dark-mode"],
        "styles": {"colorSchemes": [_scheme("Ocean Blue", "#3B82F6", "#1E40AF", "#06B6D4")],
                   "fonts": [{"name": "Inter", "family": "Inter, sans-serif"}]},
        "layout_config": {"type": "single-page", "responsive": True, "animations": True},
        "template_data": {"sections": ["hero", "about", "projects", "contact"]},
        "is_featured": True,
    },
    {
        "name": "Creative Designer Showcase",
        "category": "creative",
        "description": "Vibrant portfolio template designed for creative professionals and designers",
        "difficulty": "beginner",
        "features": ["Portfolio Grid", "Custom Animations", "Color Customization", "Image Galleries"],
        "tags": ["creative", "design", "portfolio", "visual"],
        "styles": {"colorSchemes": [_scheme("Sunset", "#F97316", "#C2410C", "#FACC15")]},
        "layout_config": {"type": "grid", "responsive": True, "animations": True},
        "template_data": {"sections": ["hero", "gallery", "about", "contact"]},
        "is_featured": True,
    },
    {
        "name": "Executive Professional",
        "category": "professional",
        "description": "Sophisticated template for executives and senior professionals",
        "difficulty": "intermediate",
        "features": ["Professional Layout", "Testimonials", "Achievement Timeline", "Contact Forms"],
        "tags": ["professional", "executive", "corporate", "business"],
        "styles": {"colorSchemes": [_scheme("Navy", "#1E3A8A", "#111827", "#D4AF37")]},
        "layout_config": {"type": "multi-section", "responsive": True, "animations": False},
        "template_data": {"sections": ["hero", "experience", "testimonials", "contact"]},
        "is_premium": True,
    },
    {
        "name": "Startup Founder",
        "category": "business",
        "description": "Dynamic portfolio for entrepreneurs and startup founders",
        "difficulty": "advanced",
        "features": ["Venture Showcase", "Team Profiles", "Investor Relations"],
        "tags": ["startup", "entrepreneur", "business", "founder"],
        "styles": {"colorSchemes": [_scheme("Launch", "#7C3AED", "#4C1D95", "#10B981")]},
        "layout_config": {"type": "single-page", "responsive": True, "animations": True},
        "template_data": {"sections": ["hero", "ventures", "team", "contact"]},
        "is_premium": True,
        "is_featured": True,
    },
    {
        "name": "Student Portfolio",
        "category": "student",
        "description": "Clean, simple portfolio perfect for students and new graduates",
        "difficulty": "beginner",
        "features": ["Education Timeline", "Project Highlights", "Resume Download"],
        "tags": ["student", "graduate", "academic", "simple"],
        "styles": {"colorSchemes": [_scheme("Campus", "#059669", "#065F46", "#3B82F6")]},
        "layout_config": {"type": "single-page", "responsive": True, "animations": False},
        "template_data": {"sections": ["hero", "education", "projects", "contact"]},
    },
    {
        "name": "Freelancer Pro",
        "category": "freelancer",
        "description": "Professional portfolio for freelancers and independent contractors",
        "difficulty": "intermediate",
        "features": ["Service Packages", "Pricing Tables", "Booking Calendar"],
        "tags": ["freelancer", "services", "pricing", "booking"],
        "styles": {"colorSchemes": [_scheme("Teal", "#0D9488", "#134E4A", "#F59E0B")]},
        "layout_config": {"type": "multi-section", "responsive": True, "animations": True},
        "template_data": {"sections": ["hero", "services", "pricing", "contact"]},
        "is_premium": True,
    },
]


async def main():
    try:
        await init_db()
        async with AsyncSessionLocal() as db:
            stats = await template_service.get_stats(db)
            if stats["total_templates"]:
                logger.info(f"Templates already present ({stats['total_templates']}), nothing to seed")
                return
            for data in TEMPLATES:
                await template_service.create_template(db, data)
            await db.commit()
        logger.info(f"✅ Seeded {len(TEMPLATES)} templates")
    except Exception as e:
        logger.error(f"❌ Template seeding failed: {e}")
        sys.exit(1)
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())
