import os
import stat
import tempfile
import unittest
from pathlib import Path

from bosh_broker.config import PlanConfig
from bosh_broker.errors import ConfigurationError, RenderError
from bosh_broker.paths import MANIFEST_MODE, SCRIPT_MODE
from bosh_broker.rendering import Template, load_plan_templates, load_template


class TemplateTests(unittest.TestCase):
    def test_render_substitutes_parameters(self) -> None:
        template = Template("name: {deployment_name}\ninstances: {instances}\n")
        data = template.render({"deployment_name": "deploymentabc", "instances": 2})
        self.assertEqual(data, b"name: deploymentabc\ninstances: 2\n")

    def test_structured_values_render_as_json(self) -> None:
        template = Template("update: {update}\nflag: {flag}\nnothing: {nothing}")
        text = template.render(
            {"update": {"max_in_flight": 1, "canaries": 1}, "flag": False, "nothing": None}
        ).decode()
        self.assertIn('update: {"canaries": 1, "max_in_flight": 1}', text)
        self.assertIn("flag: false", text)
        self.assertIn("nothing: null", text)

    def test_index_into_structured_values(self) -> None:
        template = Template("canaries: {update[canaries]}")
        self.assertEqual(template.render({"update": {"canaries": 3}}), b"canaries: 3")

    def test_escaped_braces(self) -> None:
        template = Template('echo "${{HOME}}" {name}')
        self.assertEqual(template.render({"name": "x"}), b'echo "${HOME}" x')

    def test_unresolved_placeholder_raises(self) -> None:
        template = Template("{missing}", name="manifest.yml")
        with self.assertRaises(RenderError) as ctx:
            template.render({})
        self.assertEqual(ctx.exception.template, "manifest.yml")
        self.assertIn("missing", str(ctx.exception))

    def test_malformed_template_raises(self) -> None:
        template = Template("{unclosed")
        with self.assertRaises(RenderError):
            template.render({"unclosed": 1})
        with self.assertRaises(RenderError):
            template.validate()

    def test_positional_placeholder_raises(self) -> None:
        with self.assertRaises(RenderError):
            Template("{}").render({})

    def test_render_text_strips_whitespace(self) -> None:
        template = Template("https://example.com/r?v={v}\n")
        self.assertEqual(template.render_text({"v": "1"}), "https://example.com/r?v=1")

    @unittest.skipIf(os.name == "nt", "POSIX permissions required")
    def test_render_to_file_sets_exact_mode(self) -> None:
        old_umask = os.umask(0o077)
        try:
            with tempfile.TemporaryDirectory() as tmp:
                script = Template("#!/bin/sh\necho {name}\n").render_to_file(
                    {"name": "x"}, Path(tmp) / "a" / "b_bind.sh", SCRIPT_MODE
                )
                manifest = Template("name: {name}\n").render_to_file(
                    {"name": "x"}, Path(tmp) / "a" / "manifest.yml", MANIFEST_MODE
                )
                self.assertEqual(stat.S_IMODE(script.stat().st_mode), SCRIPT_MODE)
                self.assertEqual(stat.S_IMODE(manifest.stat().st_mode), MANIFEST_MODE)
                self.assertEqual(script.read_text(), "#!/bin/sh\necho x\n")
        finally:
            os.umask(old_umask)


class LoaderTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        (self.root / "p").mkdir()
        (self.root / "p" / "manifest.yml").write_text("name: {deployment_name}\n")
        (self.root / "p" / "bind.sh").write_text("#!/bin/sh\necho '{{}}'\n")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _plan(self, **overrides) -> PlanConfig:
        fields = dict(
            id="p",
            name="p",
            manifest_template="p/manifest.yml",
            bind_template="p/bind.sh",
            stemcell="https://example.com/s?v={v}",
            release="https://example.com/r",
        )
        fields.update(overrides)
        return PlanConfig(**fields)

    def test_empty_reference_is_absent(self) -> None:
        self.assertIsNone(load_template("", self.root))

    def test_unreadable_template_is_configuration_error(self) -> None:
        with self.assertRaises(ConfigurationError):
            load_template("p/nope.yml", self.root)

    def test_loads_plan_templates(self) -> None:
        templates = load_plan_templates(self._plan(), self.root)
        self.assertIsNone(templates.unbind)
        self.assertEqual(templates.manifest.name, "p/manifest.yml")
        self.assertEqual(templates.stemcell.render_text({"v": "2"}), "https://example.com/s?v=2")

    def test_missing_manifest_is_configuration_error(self) -> None:
        with self.assertRaises(ConfigurationError):
            load_plan_templates(self._plan(manifest_template=""), self.root)

    def test_malformed_inline_template_is_configuration_error(self) -> None:
        with self.assertRaises(ConfigurationError):
            load_plan_templates(self._plan(release="https://example.com/{oops"), self.root)


if __name__ == "__main__":
    unittest.main()
