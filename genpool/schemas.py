"""
Catalog of request-body shapes the worker pool may accept.

Each variant is a pure function of the GenerationRequest; the catalog order is
the negotiation priority.
"""

from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Sequence

from .models import GenerationRequest

PayloadBuilder = Callable[[GenerationRequest], Dict[str, Any]]


@dataclass(frozen=True)
class SchemaVariant:
    """One candidate request-body shape."""
    name: str
    build: PayloadBuilder
    description: str = ""

    def __call__(self, request: GenerationRequest) -> Dict[str, Any]:
        return self.build(request)

    def __repr__(self) -> str:
        return f"SchemaVariant({self.name!r})"


def _a1111_params(request: GenerationRequest) -> Dict[str, Any]:
    return {
        "prompt": request.prompt,
        "negative_prompt": request.negative_prompt,
        "width": request.width,
        "height": request.height,
        "steps": request.steps,
        "cfg_scale": request.guidance_scale,
        "sampler_name": request.sampler_name,
        "seed": request.seed,
    }


def build_a1111_api_name(request: GenerationRequest) -> Dict[str, Any]:
    return {"input": {"api_name": "txt2img", **_a1111_params(request)}}


def build_input_params(request: GenerationRequest) -> Dict[str, Any]:
    return {
        "input": {
            "prompt": request.prompt,
            "negative_prompt": request.negative_prompt,
            "width": request.width,
            "height": request.height,
            "num_outputs": 1,
            "num_inference_steps": request.steps,
            "guidance_scale": request.guidance_scale,
            "seed": request.seed,
        }
    }


def build_endpoint_params(request: GenerationRequest) -> Dict[str, Any]:
    return {"input": {"endpoint": "txt2img", "params": _a1111_params(request)}}


def build_flat(request: GenerationRequest) -> Dict[str, Any]:
    return {
        "prompt": request.prompt,
        "negative_prompt": request.negative_prompt,
        "width": request.width,
        "height": request.height,
        "steps": request.steps,
        "cfg_scale": request.guidance_scale,
        "sampler": request.sampler_name,
        "seed": request.seed,
    }


def build_workflow(request: GenerationRequest, checkpoint_name: str,
                   scheduler: str = "normal") -> Dict[str, Any]:
    """
    Build a text-to-image ComfyUI API graph.

    Nodes: checkpoint loader (4), positive/negative CLIP encoders (5, 6),
    empty latent (7), KSampler (3), VAE decode (8), SaveImage (9).
    """
    return {
        "3": {
            "class_type": "KSampler",
            "inputs": {
                "seed": request.seed,
                "steps": request.steps,
                "cfg": request.guidance_scale,
                "sampler_name": request.sampler_name,
                "scheduler": scheduler,
                "denoise": 1.0,
                "model": ["4", 0],
                "positive": ["5", 0],
                "negative": ["6", 0],
                "latent_image": ["7", 0],
            },
        },
        "4": {
            "class_type": "CheckpointLoaderSimple",
            "inputs": {"ckpt_name": checkpoint_name},
        },
        "5": {
            "class_type": "CLIPTextEncode",
            "inputs": {"text": request.prompt, "clip": ["4", 1]},
        },
        "6": {
            "class_type": "CLIPTextEncode",
            "inputs": {"text": request.negative_prompt, "clip": ["4", 1]},
        },
        "7": {
            "class_type": "EmptyLatentImage",
            "inputs": {"width": request.width, "height": request.height, "batch_size": 1},
        },
        "8": {
            "class_type": "VAEDecode",
            "inputs": {"samples": ["3", 0], "vae": ["4", 2]},
        },
        "9": {
            "class_type": "SaveImage",
            "inputs": {"images": ["8", 0], "filename_prefix": "genpool"},
        },
    }


def build_comfy_workflow(request: GenerationRequest, checkpoint_name: str) -> Dict[str, Any]:
    return {"input": {"workflow": build_workflow(request, checkpoint_name)}}


DEFAULT_CHECKPOINT = "v1-5-pruned-emaonly-fp16.safetensors"


def build_catalog(checkpoint_name: str = DEFAULT_CHECKPOINT,
                  names: Optional[Sequence[str]] = None) -> List[SchemaVariant]:
    """
    Return the variant catalog in priority order.

    `names` selects and reorders variants; unknown names raise ValueError.
    """
    catalog = [
        SchemaVariant("a1111_api_name", build_a1111_api_name,
                      "AUTOMATIC1111 worker: input.api_name = txt2img"),
        SchemaVariant("input_params", build_input_params,
                      "Diffusers-style worker: parameters directly under input"),
        SchemaVariant("endpoint_params", build_endpoint_params,
                      "AUTOMATIC1111 worker: input.endpoint + input.params"),
        SchemaVariant("comfy_workflow", partial(build_comfy_workflow, checkpoint_name=checkpoint_name),
                      "ComfyUI worker: input.workflow node graph"),
        SchemaVariant("flat", build_flat,
                      "Legacy handler: flat body without input wrapper"),
    ]
    if names is None:
        return catalog

    by_name = {variant.name: variant for variant in catalog}
    unknown = [name for name in names if name not in by_name]
    if unknown:
        raise ValueError(f"Unknown schema variants: {', '.join(unknown)}")
    return [by_name[name] for name in names]


VARIANT_NAMES = tuple(variant.name for variant in build_catalog())
