"""Tests for CSS post-processing passes."""
from sitepipe.css import prefix_css, resolve_custom_media


class TestPrefixCss:
    """Tests for vendor prefixing."""

    def test_prefixes_transform(self):
        css = ".a {\n  transform: rotate(45deg);\n}"
        result = prefix_css(css)
        assert "-webkit-transform:rotate(45deg);" in result
        assert "-ms-transform:rotate(45deg);" in result
        assert result.endswith(";transform:rotate(45deg);\n}")

    def test_prefixes_user_select(self):
        result = prefix_css(".a{user-select:none}")
        assert result == (
            ".a{-webkit-user-select:none;-moz-user-select:none;"
            "-ms-user-select:none;user-select:none}"
        )

    def test_display_flex(self):
        result = prefix_css(".row{display:flex}")
        assert result == ".row{display:-webkit-box;display:-ms-flexbox;display:flex}"

    def test_prefixes_transition_value(self):
        result = prefix_css(".a{transition:transform 1s ease,opacity 1s}")
        assert result == (
            ".a{-webkit-transition:-webkit-transform 1s ease,opacity 1s;"
            "transition:transform 1s ease,opacity 1s}"
        )

    def test_prefixes_transition_property(self):
        result = prefix_css(".a{transition-property:transform}")
        assert result == (
            ".a{-webkit-transition-property:-webkit-transform;transition-property:transform}"
        )

    def test_transition_keeps_prefixed_names(self):
        result = prefix_css(".a{transition:-webkit-transform 1s}")
        assert result == (
            ".a{-webkit-transition:-webkit-transform 1s;transition:-webkit-transform 1s}"
        )

    def test_leaves_unlisted_properties(self):
        css = "body{color:red;margin:0}"
        assert prefix_css(css) == css

    def test_leaves_prefixed_declarations(self):
        css = ".a{-webkit-transition:none}"
        assert prefix_css(css) == css

    def test_does_not_touch_selectors(self):
        css = "a:hover{color:red}"
        assert prefix_css(css) == css

    def test_keyframes_copy(self):
        css = "@keyframes fade{from{opacity:0}to{opacity:1}}"
        result = prefix_css(css)
        assert result.startswith("@-webkit-keyframes fade{from{opacity:0}to{opacity:1}}")
        assert result.count("@keyframes fade") == 1
        assert result.count("@-webkit-keyframes fade") == 1

    def test_is_deterministic(self):
        css = ".a{transition:all 1s;transform:none}@keyframes x{to{transform:none}}"
        assert prefix_css(css) == prefix_css(css)


class TestResolveCustomMedia:
    """Tests for custom media substitution."""

    def test_substitutes_reference(self):
        css = "@custom-media --small (max-width:30em);@media (--small){body{color:red}}"
        assert resolve_custom_media(css) == "@media (max-width:30em){body{color:red}}"

    def test_multiple_definitions(self):
        css = (
            "@custom-media --small (max-width:30em);"
            "@custom-media --large (min-width:60em);"
            "@media (--small){a{b:c}}@media (--large){d{e:f}}"
        )
        result = resolve_custom_media(css)
        assert "@custom-media" not in result
        assert "@media (max-width:30em){a{b:c}}" in result
        assert "@media (min-width:60em){d{e:f}}" in result

    def test_unknown_reference_left_alone(self):
        css = "@custom-media --small (max-width:30em);@media (--huge){a{b:c}}"
        assert resolve_custom_media(css) == "@media (--huge){a{b:c}}"

    def test_no_definitions(self):
        css = "@media (max-width:30em){a{b:c}}"
        assert resolve_custom_media(css) == css
