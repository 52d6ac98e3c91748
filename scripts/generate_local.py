import argparse
import json
import sys

from thumbgen.agent_graph import ThumbnailOrchestrator, build_services
from thumbgen.config import get_settings
from thumbgen.errors import ThumbgenError
from thumbgen.schemas import GenerationRequest, GenerationResponse


def main(argv: list[str] | None = None, orchestrator: ThumbnailOrchestrator | None = None) -> int:
    parser = argparse.ArgumentParser(description="Generate titles and/or a thumbnail without the HTTP server.")
    parser.add_argument("--youtube-url", help="YouTube video to caption.")
    parser.add_argument("--image-url", help="Image URL to caption.")
    parser.add_argument("--prompt", help="Prompt for a generated thumbnail.")
    parser.add_argument("--model", choices=["dalle", "imagen"], default="dalle", help="Image provider.")
    args = parser.parse_args(argv)

    req = GenerationRequest(
        youtube_url=args.youtube_url,
        uploaded_image_url=args.image_url,
        custom_prompt=args.prompt,
        model=args.model,
    )
    orchestrator = orchestrator or ThumbnailOrchestrator(build_services(get_settings()))
    try:
        data = orchestrator.run(req)
    except ThumbgenError as e:
        print(json.dumps(GenerationResponse(success=False, error=e.message).to_json()))
        return 1

    print(json.dumps(GenerationResponse(success=True, data=data).to_json(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
