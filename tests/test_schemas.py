"""
Unit tests for the schema variant catalog.
"""

import pytest

from genpool.models import GenerationRequest
from genpool.schemas import VARIANT_NAMES, build_catalog, build_workflow


class TestSchemaCatalog:
    """Test cases for catalog order and payload shapes."""

    def test_default_priority_order(self, catalog):
        assert [v.name for v in catalog] == [
            "a1111_api_name",
            "input_params",
            "endpoint_params",
            "comfy_workflow",
            "flat",
        ]
        assert VARIANT_NAMES == tuple(v.name for v in catalog)

    def test_api_name_variant(self, catalog, request_):
        payload = catalog[0].build(request_)
        assert payload["input"]["api_name"] == "txt2img"
        assert payload["input"]["prompt"] == "anime girl with black hair"
        assert payload["input"]["cfg_scale"] == 7.0
        assert payload["input"]["seed"] == 42

    def test_input_params_variant(self, catalog, request_):
        payload = catalog[1].build(request_)
        assert set(payload) == {"input"}
        assert payload["input"]["num_inference_steps"] == 20
        assert payload["input"]["guidance_scale"] == 7.0
        assert "api_name" not in payload["input"]

    def test_endpoint_params_variant(self, catalog, request_):
        payload = catalog[2].build(request_)
        assert payload["input"]["endpoint"] == "txt2img"
        params = payload["input"]["params"]
        assert params["width"] == 512
        assert params["height"] == 512
        assert params["steps"] == 20
        assert params["sampler_name"] == "euler"

    def test_workflow_variant_uses_checkpoint(self, request_):
        catalog = build_catalog(checkpoint_name="counterfeitV25.safetensors")
        workflow = catalog[3].build(request_)["input"]["workflow"]
        assert workflow["4"]["inputs"]["ckpt_name"] == "counterfeitV25.safetensors"
        assert workflow["5"]["inputs"]["text"] == "anime girl with black hair"
        assert workflow["7"]["inputs"] == {"width": 512, "height": 512, "batch_size": 1}
        assert workflow["3"]["inputs"]["seed"] == 42

    def test_flat_variant_has_no_input_wrapper(self, catalog, request_):
        payload = catalog[4].build(request_)
        assert "input" not in payload
        assert payload["prompt"] == "anime girl with black hair"
        assert payload["sampler"] == "euler"

    def test_variants_are_pure(self, catalog, request_):
        before = request_.model_dump()
        for variant in catalog:
            assert variant.build(request_) == variant.build(request_)
        assert request_.model_dump() == before

    def test_workflow_graph_wiring(self, request_):
        graph = build_workflow(request_, "model.safetensors")
        assert graph["8"]["inputs"]["samples"] == ["3", 0]
        assert graph["9"]["class_type"] == "SaveImage"
        assert graph["6"]["inputs"]["text"] == ""

    def test_names_select_and_reorder(self):
        catalog = build_catalog(names=["endpoint_params", "flat"])
        assert [v.name for v in catalog] == ["endpoint_params", "flat"]

    def test_unknown_name_rejected(self):
        with pytest.raises(ValueError, match="Unknown schema variants"):
            build_catalog(names=["a1111_api_name", "graphql"])


class TestGenerationRequest:
    """Test cases for request validation."""

    def test_defaults(self):
        request = GenerationRequest(prompt="a cat")
        assert request.width == 512
        assert request.height == 512
        assert request.seed == -1
        assert request.has_random_seed

    def test_immutable(self):
        request = GenerationRequest(prompt="a cat")
        with pytest.raises(Exception):
            request.prompt = "a dog"

    @pytest.mark.parametrize("field,value", [
        ("width", 0),
        ("height", -8),
        ("steps", 0),
        ("guidance_scale", 0.0),
        ("seed", -2),
    ])
    def test_invalid_values(self, field, value):
        with pytest.raises(ValueError):
            GenerationRequest(prompt="a cat", **{field: value})

    def test_blank_prompt(self):
        with pytest.raises(ValueError):
            GenerationRequest(prompt="   ")

    def test_with_seed_returns_copy(self):
        request = GenerationRequest(prompt="a cat")
        seeded = request.with_seed(7)
        assert seeded.seed == 7
        assert request.seed == -1
