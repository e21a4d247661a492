import pytest
from pydantic import ValidationError

from push2verify.models import Credential, ImageReference, PipelineOptions


class TestImageReference:

    def test_ref(self):
        image = ImageReference(registry="docker.pkg.github.com", repository="alex-dukhno/database/database")
        assert image.ref == "docker.pkg.github.com/alex-dukhno/database/database:latest"
        assert str(image) == image.ref

    def test_parse(self):
        image = ImageReference.parse("docker.pkg.github.com/alex-dukhno/database/database:v1")
        assert image.registry == "docker.pkg.github.com"
        assert image.repository == "alex-dukhno/database/database"
        assert image.tag == "v1"

    def test_parse_registry_with_port_and_no_tag(self):
        image = ImageReference.parse("localhost:5000/database")
        assert image.registry == "localhost:5000"
        assert image.repository == "database"
        assert image.tag == "latest"

    def test_parse_without_registry(self):
        with pytest.raises(ValueError):
            ImageReference.parse("database:latest")

    def test_is_immutable(self):
        image = ImageReference(registry="r", repository="p")
        with pytest.raises(ValidationError):
            image.tag = "other"
        assert image.with_tag("abc").tag == "abc"
        assert image.tag == "latest"


class TestCredential:

    def test_token_is_hidden(self):
        credential = Credential(username="ci-bot", token="hunter2")

        assert "hunter2" not in repr(credential)
        assert "hunter2" not in str(credential)
        assert "hunter2" not in credential.model_dump_json()
        assert credential.secret() == "hunter2"
        assert credential.scope == "registry"


class TestPipelineOptions:

    def test_image_uses_configured_tag(self):
        options = PipelineOptions(registry="r.example.com", repository="acme/db", tag="latest")

        assert options.image().ref == "r.example.com/acme/db:latest"
        assert options.image("abc123").ref == "r.example.com/acme/db:abc123"

    def test_every_step_kind_has_a_timeout(self):
        options = PipelineOptions()
        assert set(options.timeouts) == {"checkout", "build", "login", "push", "pull", "run", "install", "test"}
        assert all(timeout > 0 for timeout in options.timeouts.values())

    def test_image_with_commit_tag_keeps_registry_and_repository(self):
        options = PipelineOptions(registry="r.example.com", repository="acme/db", tag="stable")

        assert options.image().tag == "stable"
        assert options.image("abc123") == options.image().with_tag("abc123")
