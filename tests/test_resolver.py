"""Tests for layered template path resolution."""

import pytest

from cms_fluid.configuration import ApplicationContext, ConfigurationManager, GlobalPathConfiguration
from cms_fluid.paths import PackageScope, PathSet
from cms_fluid.registry import PackageRegistry
from cms_fluid.resolver import PathResolver
from cms_fluid.utils import ConfigurationError

NEWS_TEMPLATES = "/ext/news/Resources/Private/Templates/"
NEWS_PARTIALS = "/ext/news/Resources/Private/Partials/"
NEWS_LAYOUTS = "/ext/news/Resources/Private/Layouts/"


def news_view(view, namespace="plugin."):
    return {namespace: {"tx_news.": {"view.": view}}}


@pytest.fixture
def news_registry():
    return PackageRegistry({"news": "/ext/news/"})


class TestResolveLayers:
    """Priority order: system, global, package, plugin, view, explicit."""

    def test_global_package_view_and_system_layers(self, news_registry):
        resolver = PathResolver(
            package_registry=news_registry,
            configuration_manager=ConfigurationManager(
                news_view({"templateRootPaths.": {"10": "/custom/Templates/"}})
            ),
            global_paths=GlobalPathConfiguration({"global": {"templateRootPaths": {"0": "/global/Templates/"}}}),
        )

        paths = resolver.resolve(PackageScope("news"))

        assert paths.template_root_paths == [NEWS_TEMPLATES, "/global/Templates/", "/custom/Templates/"]
        assert paths.partial_root_paths == [NEWS_PARTIALS]
        assert paths.layout_root_paths == [NEWS_LAYOUTS]

    def test_explicit_paths_come_last(self, news_registry):
        resolver = PathResolver(
            package_registry=news_registry,
            global_paths=GlobalPathConfiguration({"global": {"templateRootPaths": {"0": "/global/Templates/"}}}),
        )

        paths = resolver.resolve(PackageScope("news"), PathSet(template_root_paths=["/explicit/"]))

        assert paths.template_root_paths == [NEWS_TEMPLATES, "/global/Templates/", "/explicit/"]

    def test_package_overrides_global_on_same_order_key(self, news_registry):
        resolver = PathResolver(
            package_registry=news_registry,
            global_paths=GlobalPathConfiguration({
                "global": {"partialRootPaths": {"10": "/global/Partials/"}},
                "news": {"partialRootPaths": {"10": "/news/Partials/"}},
            }),
        )

        paths = resolver.resolve(PackageScope("news"))

        assert paths.partial_root_paths == [NEWS_PARTIALS, "/news/Partials/"]

    def test_plugin_overrides_package(self, news_registry):
        resolver = PathResolver(
            package_registry=news_registry,
            global_paths=GlobalPathConfiguration({
                "news": {
                    "layoutRootPaths": {"5": "/news/Layouts/"},
                    "Pi1": {"layoutRootPaths": {"5": "/pi1/Layouts/", "6": "/pi1/More/"}},
                },
            }),
        )

        assert resolver.resolve(PackageScope("news", "Pi1")).layout_root_paths == [
            NEWS_LAYOUTS, "/pi1/Layouts/", "/pi1/More/",
        ]
        assert resolver.resolve(PackageScope("news")).layout_root_paths == [NEWS_LAYOUTS, "/news/Layouts/"]

    def test_view_configuration_overrides_global(self, news_registry):
        resolver = PathResolver(
            package_registry=news_registry,
            configuration_manager=ConfigurationManager(
                news_view({"templateRootPaths.": {"10": "/view/Templates/"}})
            ),
            global_paths=GlobalPathConfiguration({"news": {"templateRootPaths": {"10": "/global/Templates/"}}}),
        )

        assert resolver.resolve(PackageScope("news")).template_root_paths == [NEWS_TEMPLATES, "/view/Templates/"]

    def test_integer_order_keys_sort_numerically(self, news_registry):
        resolver = PathResolver(
            package_registry=news_registry,
            global_paths=GlobalPathConfiguration({"global": {"templateRootPaths": {"10": "/ten/", "2": "/two/"}}}),
        )

        assert resolver.resolve(PackageScope("news")).template_root_paths == [NEWS_TEMPLATES, "/two/", "/ten/"]


class TestResolveContexts:

    @pytest.fixture
    def configuration(self):
        configuration = news_view({"templateRootPaths.": {"10": "/frontend/"}})
        configuration.update(news_view({"templateRootPaths.": {"10": "/backend/"}}, namespace="module."))
        return ConfigurationManager(configuration)

    def test_frontend_reads_plugin_namespace(self, news_registry, configuration):
        resolver = PathResolver(news_registry, configuration, ApplicationContext("FE"))
        assert resolver.resolve(PackageScope("news")).template_root_paths == [NEWS_TEMPLATES, "/frontend/"]

    def test_backend_reads_module_namespace(self, news_registry, configuration):
        resolver = PathResolver(news_registry, configuration, ApplicationContext("BE"))
        assert resolver.resolve(PackageScope("news")).template_root_paths == [NEWS_TEMPLATES, "/backend/"]

    def test_signature_strips_underscores(self):
        registry = PackageRegistry({"blog_example": "/ext/blog_example/"})
        configuration = ConfigurationManager(
            {"plugin.": {"tx_blogexample.": {"view.": {"partialRootPaths.": {"0": "/blog/"}}}}}
        )
        resolver = PathResolver(registry, configuration)

        assert resolver.resolve(PackageScope("blog_example")).partial_root_paths == [
            "/ext/blog_example/Resources/Private/Partials/", "/blog/",
        ]


class TestResolveEdgeCases:

    def test_unknown_package_gets_global_layer_only(self, news_registry):
        resolver = PathResolver(
            package_registry=news_registry,
            global_paths=GlobalPathConfiguration({"global": {"templateRootPaths": {"0": "/global/"}}}),
        )

        paths = resolver.resolve(PackageScope("nonexistent"))

        assert paths.template_root_paths == ["/global/"]
        assert paths.partial_root_paths == []

    def test_empty_scope_resolves_global_configuration(self, news_registry):
        resolver = PathResolver(
            package_registry=news_registry,
            global_paths=GlobalPathConfiguration({
                "global": {"layoutRootPaths": {"0": "/global/"}},
                "news": {"layoutRootPaths": {"1": "/news/"}},
            }),
        )

        assert resolver.resolve().layout_root_paths == ["/global/"]
        assert resolver.resolve(PackageScope("  ")).layout_root_paths == ["/global/"]

    def test_empty_scope_appends_explicit_paths_without_duplicates(self, news_registry):
        resolver = PathResolver(
            package_registry=news_registry,
            global_paths=GlobalPathConfiguration({"global": {"templateRootPaths": {"0": "/g1/", "1": "/g2/"}}}),
        )

        paths = resolver.resolve(None, PathSet(template_root_paths=["/e1/", "/g1/", "/e1/"]))

        assert paths.template_root_paths == ["/g2/", "/g1/", "/e1/"]

    def test_nothing_configured_gives_empty_path_set(self):
        assert PathResolver().resolve(PackageScope("news")).is_empty()

    def test_duplicates_keep_highest_priority_position(self, news_registry):
        resolver = PathResolver(
            package_registry=news_registry,
            global_paths=GlobalPathConfiguration({"global": {"templateRootPaths": {"0": "/shared/", "1": "/other/"}}}),
        )

        paths = resolver.resolve(PackageScope("news"), PathSet(template_root_paths=["/shared/"]))

        assert paths.template_root_paths == [NEWS_TEMPLATES, "/other/", "/shared/"]

    def test_extension_reference_matching_system_path_is_collapsed(self, news_registry):
        resolver = PathResolver(
            package_registry=news_registry,
            global_paths=GlobalPathConfiguration({
                "news": {"templateRootPaths": {"0": "EXT:news/Resources/Private/Templates/"}},
            }),
        )

        assert resolver.resolve(PackageScope("news")).template_root_paths == [NEWS_TEMPLATES]

    def test_system_path_stays_first_when_configuration_repeats_it(self, news_registry):
        resolver = PathResolver(
            package_registry=news_registry,
            global_paths=GlobalPathConfiguration({
                "global": {"templateRootPaths": {"0": "/a/", "10": "EXT:news/Resources/Private/Templates/"}},
            }),
        )

        paths = resolver.resolve(PackageScope("news"), PathSet(template_root_paths=["/explicit/"]))

        assert paths.template_root_paths == [NEWS_TEMPLATES, "/a/", "/explicit/"]

    def test_system_path_stays_first_when_explicit_paths_repeat_it(self, news_registry):
        resolver = PathResolver(package_registry=news_registry)

        paths = resolver.resolve(PackageScope("news"), PathSet(partial_root_paths=["/mine/", NEWS_PARTIALS]))

        assert paths.partial_root_paths == [NEWS_PARTIALS, "/mine/"]

    def test_unresolved_reference_kept_verbatim(self, news_registry):
        resolver = PathResolver(
            package_registry=news_registry,
            global_paths=GlobalPathConfiguration({"global": {"templateRootPaths": {"0": "EXT:missing/Templates/"}}}),
        )

        assert resolver.resolve(PackageScope("news")).template_root_paths == [
            NEWS_TEMPLATES, "EXT:missing/Templates/",
        ]

    def test_unresolved_reference_dropped_on_request(self, news_registry):
        resolver = PathResolver(
            package_registry=news_registry,
            global_paths=GlobalPathConfiguration({"global": {"templateRootPaths": {"0": "EXT:missing/Templates/"}}}),
            drop_unresolved=True,
        )

        assert resolver.resolve(PackageScope("news")).template_root_paths == [NEWS_TEMPLATES]

    def test_malformed_view_section_is_skipped(self, news_registry, caplog):
        configuration = ConfigurationManager({"plugin.": {"tx_news.": {"view.": "not a mapping"}}})
        resolver = PathResolver(news_registry, configuration)

        assert resolver.resolve(PackageScope("news")).template_root_paths == [NEWS_TEMPLATES]
        assert "plugin.tx_news.view." in caplog.text

    def test_malformed_category_is_skipped(self, news_registry, caplog):
        resolver = PathResolver(
            package_registry=news_registry,
            global_paths=GlobalPathConfiguration({
                "global": {"templateRootPaths": "/flat/string/", "partialRootPaths": {"0": "/p/"}},
            }),
        )

        paths = resolver.resolve(PackageScope("news"))

        assert paths.template_root_paths == [NEWS_TEMPLATES]
        assert paths.partial_root_paths == [NEWS_PARTIALS, "/p/"]
        assert "Ignoring templateRootPaths" in caplog.text

    def test_failing_configuration_source_is_logged_not_raised(self, news_registry, caplog):
        class BrokenConfiguration(ConfigurationManager):
            def get_full_configuration(self):
                raise ConfigurationError("configuration store unavailable")

        resolver = PathResolver(news_registry, BrokenConfiguration())

        assert resolver.resolve(PackageScope("news")).template_root_paths == [NEWS_TEMPLATES]
        assert "configuration store unavailable" in caplog.text

    def test_configuration_store_is_not_mutated(self, news_registry):
        view = {"templateRootPaths.": {"10": "/custom/"}}
        configuration = ConfigurationManager(news_view(view))
        resolver = PathResolver(news_registry, configuration)

        first = resolver.resolve(PackageScope("news"))
        second = resolver.resolve(PackageScope("news"))

        assert first == second
        assert configuration.get_full_configuration() == news_view(view)

    def test_results_are_independent(self, news_registry):
        resolver = PathResolver(news_registry)
        first = resolver.resolve(PackageScope("news"))
        first.template_root_paths.append("/mutated/")

        assert resolver.resolve(PackageScope("news")).template_root_paths == [NEWS_TEMPLATES]


class TestSystemPaths:

    def test_loaded_package(self, news_registry):
        resolver = PathResolver(news_registry)
        assert resolver.get_system_paths("news") == {
            "templateRootPaths": NEWS_TEMPLATES,
            "partialRootPaths": NEWS_PARTIALS,
            "layoutRootPaths": NEWS_LAYOUTS,
        }

    def test_unknown_or_missing_package(self, news_registry):
        resolver = PathResolver(news_registry)
        assert resolver.get_system_paths("nonexistent") == {}
        assert resolver.get_system_paths(None) == {}


class TestFromSettings:

    def test_builds_collaborators_from_files(self, tmp_path, extension_tree):
        import json

        from config.settings import Settings

        typoscript = tmp_path / "typoscript.json"
        typoscript.write_text(json.dumps(
            {"module.": {"tx_news.": {"view.": {"templateRootPaths.": {"10": "/backend/"}}}}}
        ))
        fluid_paths = tmp_path / "paths.json"
        fluid_paths.write_text(json.dumps({"global": {"layoutRootPaths": {"0": "/global/Layouts/"}}}))

        settings = Settings(
            application_root=str(tmp_path),
            application_context="be",
            extensions_dir="ext",
            typoscript_file=str(typoscript),
            fluid_paths_file=str(fluid_paths),
        )
        resolver = PathResolver.from_settings(settings)
        paths = resolver.resolve(PackageScope("news"))

        news_private = f"{extension_tree}/news/Resources/Private/"
        assert resolver.application_context.is_backend()
        assert resolver.package_registry.get_loaded_packages() == ["blog_example", "news"]
        assert paths.template_root_paths == [news_private + "Templates/", "/backend/"]
        assert paths.layout_root_paths == [news_private + "Layouts/", "/global/Layouts/"]

    def test_missing_configuration_file_raises(self, tmp_path):
        from config.settings import Settings

        settings = Settings(application_root=str(tmp_path), typoscript_file=str(tmp_path / "missing.json"))
        with pytest.raises(ConfigurationError):
            PathResolver.from_settings(settings)
