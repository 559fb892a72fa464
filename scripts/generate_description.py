#!/usr/bin/env python3
"""
Generate a product description through the running API and save it to Airtable.

Does what the web form does: builds the prompt, calls /generate, extracts the
text, then calls /save-description with the product linked by name.

Usage:
    1. Start the API:
       uvicorn app.main:app --reload

    2. Run:
       python scripts/generate_description.py --product "Smartwatch" \
           --features "GPS tracking, heart rate monitor" \
           --audience "Fitness enthusiasts" --length short
"""

import argparse
import json
import sys
from pathlib import Path

import httpx

# Add the parent directory to the path so we can import from app
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.api.descriptions.schemas import DescriptionLength, GenerationRequest
from app.services.prompt_builder import build_prompt, extract_generated_text

USER_AGENT = "AI-Product-Generator-CLI/1.0"


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate and save a product description")
    parser.add_argument("--api", default="http://localhost:8000", help="Base URL of the API")
    parser.add_argument("--product", required=True, help="Product name")
    parser.add_argument("--features", required=True, help="Key features")
    parser.add_argument("--audience", required=True, help="Target audience")
    parser.add_argument(
        "--length",
        choices=[length.value for length in DescriptionLength],
        default=DescriptionLength.MEDIUM.value,
    )
    parser.add_argument("--no-save", action="store_true", help="Only generate, do not save")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    form = GenerationRequest(
        product_name=args.product,
        key_features=args.features,
        target_audience=args.audience,
        description_length=DescriptionLength(args.length),
    )
    prompt = build_prompt(form)
    print(f"Prompt: {prompt}\n")

    with httpx.Client(base_url=args.api, timeout=120.0, headers={"User-Agent": USER_AGENT}) as client:
        response = client.post("/generate", json={"prompt": prompt})
        if response.is_error:
            print(f"✗ Generation failed ({response.status_code}): {response.json().get('error')}")
            return 1

        text = extract_generated_text(response.json())
        print("Generated Description:")
        print("=" * 60)
        print(text)
        print("=" * 60)

        if args.no_save:
            return 0

        save_response = client.post(
            "/save-description",
            json={
                "recordId": form.product_name,
                "linkedProduct": [{"name": form.product_name}],
                "keyFeatures": form.key_features,
                "targetAudience": form.target_audience,
                "descriptionLength": form.description_length.value,
                "generatedText": text,
            },
        )
        if save_response.is_error:
            print(f"✗ Failed to save to Airtable ({save_response.status_code}): {save_response.json().get('error')}")
            return 1

        print("✓ Description saved to Airtable successfully!")
        print(json.dumps(save_response.json()["record"], indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
