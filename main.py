"""Simple entrypoint to run a Garment Studio workflow locally with offline providers."""

import json

from studio_app.app import GarmentStudioApp
from studio_app.config import StudioConfig
from tools.image_generation import MockImageProvider
from tools.tryon import MockTryOnProvider


def main() -> None:
    app = GarmentStudioApp(
        config=StudioConfig(),
        image_provider=MockImageProvider(),
        tryon_provider=MockTryOnProvider(),
    )
    orchestrator = app.orchestrator
    session = orchestrator.start_session(avatar_id="demo-avatar", avatar_image="https://example.test/avatar.png")
    orchestrator.submit(session.session_id, "red silk blouse", style="formal")
    orchestrator.accept(session.session_id)
    print(json.dumps(session.snapshot(), indent=2))
    print(json.dumps(orchestrator.avatar_status("demo-avatar"), indent=2))


if __name__ == "__main__":
    main()
