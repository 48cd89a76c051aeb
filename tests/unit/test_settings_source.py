"""Unit tests for EngineConfig normalization and StaticSettingsSource."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from src.config.settings import Settings
from src.interfaces.settings_source import EngineConfig, extract_ids
from src.providers.settings.static_settings_source import StaticSettingsSource


class TestExtractIds:
    def test_multiselect_shape(self) -> None:
        assert extract_ids([{"value": 12}, {"value": "15"}]) == {"12", "15"}

    def test_plain_ids(self) -> None:
        assert extract_ids([3, "4"]) == {"3", "4"}

    def test_skips_unusable_entries(self) -> None:
        assert extract_ids([{"label": "x"}, "", None, {"value": ""}, 5]) == {"5"}

    def test_empty(self) -> None:
        assert extract_ids(None) == set()
        assert extract_ids([]) == set()


class TestEngineConfig:
    def test_defaults(self) -> None:
        config = EngineConfig()
        assert config.included_types == ["post", "page", "product"]
        assert config.excluded_ids == {}
        assert config.commerce_enabled is True
        assert config.crawl.max_pages == 15
        assert config.has_settings_content() is False

    def test_excluded_ids_normalized(self) -> None:
        config = EngineConfig(excluded_ids={"product": [{"value": 1}, {"value": 2}], "post": [9]})
        assert config.excluded_products == {"1", "2"}
        assert config.excluded_for("post") == {"9"}
        assert config.excluded_for("page") == set()

    def test_excluded_categories_normalized(self) -> None:
        config = EngineConfig(excluded_categories=[{"value": 7}])
        assert config.excluded_categories == {"7"}

    def test_whitespace_settings_content_is_empty(self) -> None:
        assert EngineConfig(contact_info="  \n").has_settings_content() is False
        assert EngineConfig(custom_content="Open 9-5").has_settings_content() is True

    def test_is_frozen(self) -> None:
        config = EngineConfig()
        with pytest.raises(ValidationError):
            config.batch_size = 5  # type: ignore[misc]


class TestStaticSettingsSource:
    def test_from_settings_maps_fields(self) -> None:
        settings = Settings(
            openai_api_key="sk-test",
            batch_size=25,
            commerce_enabled=False,
            crawl_max_pages=4,
            crawl_max_depth=1,
            pdf_max_file_size=1024,
        )
        config = StaticSettingsSource.from_settings(settings, contact_info="hello").get_config()

        assert config.api_key == "sk-test"
        assert config.batch_size == 25
        assert config.commerce_enabled is False
        assert config.crawl.max_pages == 4
        assert config.crawl.max_depth == 1
        assert config.max_upload_bytes == 1024
        assert config.contact_info == "hello"

    @pytest.mark.asyncio
    async def test_update_replaces_snapshot(self) -> None:
        source = StaticSettingsSource()
        new = await source.update(contact_info="Call us", excluded_ids={"post": [1]})

        assert source.get_config() is new
        assert new.contact_info == "Call us"
        assert new.excluded_for("post") == {"1"}

    @pytest.mark.asyncio
    async def test_update_keeps_untouched_fields(self) -> None:
        source = StaticSettingsSource(EngineConfig(excluded_ids={"product": [3]}, batch_size=4))
        new = await source.update(contact_info="x")
        assert new.excluded_products == {"3"}
        assert new.batch_size == 4

    @pytest.mark.asyncio
    async def test_listeners_receive_old_and_new(self) -> None:
        source = StaticSettingsSource()
        seen: list[tuple[str, str]] = []

        async def listener(old: EngineConfig, new: EngineConfig) -> None:
            seen.append((old.contact_info, new.contact_info))

        source.subscribe(listener)
        source.subscribe(listener)
        await source.update(contact_info="a")
        await source.update(contact_info="b")

        assert seen == [("", "a"), ("a", "b")]

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_block_others(self) -> None:
        source = StaticSettingsSource()
        calls: list[str] = []

        async def broken(old: EngineConfig, new: EngineConfig) -> None:
            raise RuntimeError("boom")

        def sync_listener(old: EngineConfig, new: EngineConfig) -> None:
            calls.append("sync")

        source.subscribe(broken)
        source.subscribe(sync_listener)  # type: ignore[arg-type]
        await source.update(custom_content="x")

        assert calls == ["sync"]
        assert source.get_config().custom_content == "x"
