"""
Command line services: endpoint health, image generation and endpoint lifecycle.
"""

import argparse
import json
from pathlib import Path

from .admin import EndpointAdminClient
from .base import BaseService, run_service
from .client import ImageJobClient
from .errors import GenPoolError, TimeoutExceeded
from .events import JobEvent
from .models import GeneratedImage, GenerationRequest
from .schemas import VARIANT_NAMES

MIME_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
    "image/gif": ".gif",
}


class HealthService(BaseService):
    """Reports worker availability of the configured endpoint."""

    @classmethod
    def add_arguments(cls, parser: argparse.ArgumentParser) -> None:
        parser.add_argument("--schema", action="store_true", help="Also print the advisory endpoint schema")

    def run(self) -> int:
        try:
            client = ImageJobClient(self.config)
            report = client.check_health()
            self.logger.info(
                f"Workers ready={report.workers_ready} busy={report.workers_busy} idle={report.workers_idle}"
            )
            if report.jobs_in_queue is not None:
                self.logger.info(f"Jobs in queue={report.jobs_in_queue} in progress={report.jobs_in_progress}")
            if getattr(self.args, "schema", False):
                schema = client.health.fetch_schema()
                self.logger.info(f"Endpoint schema: {json.dumps(schema, indent=2)}")
            return 0 if report.has_available_workers else 2

        except GenPoolError as e:
            self.logger.error(f"Health check failed [{e.kind.value}]: {e}")
            return 1


class GenerateImageService(BaseService):
    """Generates one image and writes it to disk."""

    @classmethod
    def add_arguments(cls, parser: argparse.ArgumentParser) -> None:
        parser.add_argument("--prompt", type=str, required=True, help="Text prompt")
        parser.add_argument("--negative-prompt", type=str, default="", help="Negative prompt")
        parser.add_argument("--width", type=int, default=512, help="Image width")
        parser.add_argument("--height", type=int, default=512, help="Image height")
        parser.add_argument("--steps", type=int, default=20, help="Sampling steps")
        parser.add_argument("--guidance-scale", type=float, default=7.0, help="Guidance scale")
        parser.add_argument("--sampler", type=str, default="euler", help="Sampler name")
        parser.add_argument("--seed", type=int, default=-1, help="Seed (-1 for random)")
        parser.add_argument("--variant", type=str, choices=VARIANT_NAMES, default=None,
                            help="Schema variant to try first")
        parser.add_argument("--output", type=str, default=None, help="Output image path")

    def _build_request(self) -> GenerationRequest:
        return GenerationRequest(
            prompt=self.args.prompt,
            negative_prompt=self.args.negative_prompt,
            width=self.args.width,
            height=self.args.height,
            steps=self.args.steps,
            guidance_scale=self.args.guidance_scale,
            sampler_name=self.args.sampler,
            seed=self.args.seed,
        )

    def _output_path(self, image: GeneratedImage) -> Path:
        if getattr(self.args, "output", None):
            return Path(self.args.output)
        extension = MIME_EXTENSIONS.get(image.mime_type, ".png")
        return Path(self.config.output.image_dir) / f"{image.job_id}{extension}"

    def _log_event(self, event: JobEvent) -> None:
        self.logger.debug(f"{event.type.value}: job={event.job_id} variant={event.variant} status={event.status}")

    def _save_image(self, image: GeneratedImage) -> Path:
        output_path = self._output_path(image)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(image.data)
        self.logger.info(f"Saved image to {output_path}")
        return output_path

    def run(self) -> int:
        try:
            self.logger.info("Starting image generation")
            client = ImageJobClient(self.config)
            client.events.subscribe(self._log_event)

            image = client.generate(self._build_request(), preferred=self.args.variant)
            output_path = self._save_image(image)

            if not output_path.exists() or output_path.stat().st_size == 0:
                self.logger.error(f"Output file not created: {output_path}")
                return 1

            self.logger.info(f"Image generation completed with variant {image.variant.name}")
            return 0

        except TimeoutExceeded as e:
            self.logger.error(f"Job {e.job_id} still running after the poll budget; it may finish remotely")
            return 1
        except GenPoolError as e:
            self.logger.error(f"Image generation failed [{e.kind.value}]: {e}")
            return 1


class EndpointAdminService(BaseService):
    """Starts, stops or inspects the configured endpoint."""

    @classmethod
    def add_arguments(cls, parser: argparse.ArgumentParser) -> None:
        parser.add_argument("action", choices=["start", "stop", "status"], help="Lifecycle action")

    def run(self) -> int:
        try:
            admin = EndpointAdminClient(self.config.endpoint, self.config.admin)
            result = getattr(admin, self.args.action)()
            self.logger.info(f"Endpoint {self.args.action}: {json.dumps(result)}")
            return 0

        except GenPoolError as e:
            self.logger.error(f"Endpoint {self.args.action} failed [{e.kind.value}]: {e}")
            return 1


def health_main():
    """Entry point for the health check."""
    run_service(HealthService, "Endpoint health check")


def generate_main():
    """Entry point for image generation."""
    run_service(GenerateImageService, "Image generation")


def endpoint_main():
    """Entry point for endpoint lifecycle control."""
    run_service(EndpointAdminService, "Endpoint lifecycle control")
