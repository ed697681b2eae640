"""Test directory attribute decoders"""

import json

import pytest

from rolesync.services.decoders import (
    parse_localized,
    localized_json,
    pick_localized,
    join_values,
    decode_entitlement_ref,
    decode_dynamic_parm_vals,
    unescape_param_entities,
)

REF_XML = '<ref><src>UA</src><id>cn=Group1,o=data</id><param>{"ID":"g1","ID2":"g2","ID3":"g3"}</param></ref>'


class TestLocalized:
    def test_two_languages(self):
        assert parse_localized("en~Hello|de~Hallo") == {"en": "Hello", "de": "Hallo"}

    @pytest.mark.parametrize("value", ["", None])
    def test_empty_input(self, value):
        assert parse_localized(value) == {}
        assert localized_json(value) == "{}"

    def test_segments_without_tilde_are_dropped(self):
        assert parse_localized("en~Hello|garbage|de~Hallo") == {"en": "Hello", "de": "Hallo"}

    def test_split_on_first_tilde_only(self):
        assert parse_localized("en~a~b") == {"en": "a~b"}

    def test_last_duplicate_wins(self):
        assert parse_localized("en~first|en~second") == {"en": "second"}

    def test_empty_value_kept(self):
        assert parse_localized("en~") == {"en": ""}

    def test_json_form(self):
        stored = localized_json("en~Hello|de~Grüße")
        assert json.loads(stored) == {"en": "Hello", "de": "Grüße"}
        assert "Grüße" in stored


class TestPickLocalized:
    def test_prefers_english(self):
        assert pick_localized({"de": "Hallo", "en": "Hello"}) == "Hello"

    def test_falls_back_to_german(self):
        assert pick_localized({"fr": "Bonjour", "de": "Hallo"}) == "Hallo"

    def test_falls_back_to_any(self):
        assert pick_localized({"fr": "Bonjour"}) == "Bonjour"

    def test_empty(self):
        assert pick_localized({}) == ""


def test_join_values_keeps_directory_order():
    assert join_values(["b", "a", "c"]) == "b|a|c"
    assert join_values([]) == ""


class TestEntitlementRef:
    def test_full_reference(self):
        ref = decode_entitlement_ref(f"cn=Driver,o=System#1#{REF_XML}")

        assert ref.driver == "cn=Driver,o=System"
        assert ref.status == "1"
        assert ref.xml == REF_XML
        assert ref.xml_src == "UA"
        assert ref.xml_id == "cn=Group1,o=data"
        assert (ref.param_id, ref.param_id2, ref.param_id3) == ("g1", "g2", "g3")

    def test_driver_only(self):
        ref = decode_entitlement_ref("driverOnly")

        assert ref.driver == "driverOnly"
        assert ref.status == ""
        assert ref.xml == ""
        assert ref.xml_src == ""
        assert ref.xml_id == ""
        assert ref.param_id == ""

    def test_driver_and_status(self):
        ref = decode_entitlement_ref("drv#0")
        assert (ref.driver, ref.status, ref.xml) == ("drv", "0", "")

    def test_empty(self):
        ref = decode_entitlement_ref("")
        assert ref.driver == "" and ref.xml_src == ""

    def test_hash_inside_xml_is_preserved(self):
        xml = "<ref><src>a#b</src><id>x</id></ref>"
        ref = decode_entitlement_ref(f"drv#1#{xml}")
        assert ref.xml == xml
        assert ref.xml_src == "a#b"

    def test_malformed_xml_fails_soft(self):
        ref = decode_entitlement_ref("drv#1#<ref><src>unclosed")

        assert ref.driver == "drv"
        assert ref.status == "1"
        assert ref.xml == "<ref><src>unclosed"
        assert ref.xml_src == ""
        assert ref.xml_id == ""

    def test_unexpected_root_fails_soft(self):
        ref = decode_entitlement_ref("drv#1#<other><src>x</src></other>")
        assert ref.xml_src == ""

    def test_param_not_json_kept_verbatim(self):
        ref = decode_entitlement_ref("drv#1#<ref><src>s</src><id>i</id><param>plain-id</param></ref>")

        assert ref.xml_src == "s"
        assert ref.param_id == "plain-id"
        assert ref.param_id2 == ""

    def test_param_partial_keys(self):
        ref = decode_entitlement_ref('drv#1#<ref><src>s</src><id>i</id><param>{"ID":"only"}</param></ref>')
        assert (ref.param_id, ref.param_id2, ref.param_id3) == ("only", "", "")

    def test_param_numeric_values_are_stringified(self):
        ref = decode_entitlement_ref('drv#1#<ref><src>s</src><id>i</id><param>{"ID":42}</param></ref>')
        assert ref.param_id == "42"

    def test_missing_param(self):
        ref = decode_entitlement_ref("drv#1#<ref><src>s</src><id>i</id></ref>")
        assert (ref.xml_src, ref.xml_id, ref.param_id) == ("s", "i", "")

    def test_trailing_content_after_ref_is_ignored(self):
        xml = '<ref><src>UA</src><id>g1</id><param>{"ID":"x"}</param></ref>trailing<more/>'
        ref = decode_entitlement_ref(f"drv#1#{xml}")

        assert ref.xml == xml
        assert (ref.xml_src, ref.xml_id, ref.param_id) == ("UA", "g1", "x")

    def test_error_inside_ref_still_fails_soft(self):
        ref = decode_entitlement_ref("drv#1#<ref><src>s</id></ref>")
        assert ref.xml_src == ""


class TestDynamicParmVals:
    def test_double_escaped_object(self):
        xml = "<parameter><value>{&amp;quot;a&amp;quot;:1}</value></parameter>"
        assert decode_dynamic_parm_vals(xml) == '{"a":1}'

    def test_single_escaped_object(self):
        xml = "<parameter><value>{&quot;a&quot;:1}</value></parameter>"
        assert decode_dynamic_parm_vals(xml) == '{"a":1}'

    def test_array_is_reserialized_canonically(self):
        xml = (
            "<parameter><value>[ {&amp;quot;b&amp;quot;: 2, &amp;quot;a&amp;quot;: "
            "&amp;quot;&amp;lt;x&amp;gt;&amp;quot;} ]</value></parameter>"
        )
        assert decode_dynamic_parm_vals(xml) == '[{"a":"<x>","b":2}]'

    def test_other_entities_are_not_unescaped(self):
        xml = "<parameter><value>{&amp;#34;a&amp;#34;:1}</value></parameter>"
        assert decode_dynamic_parm_vals(xml) is None

    def test_not_json(self):
        assert decode_dynamic_parm_vals("<parameter><value>not json</value></parameter>") is None

    def test_scalar_json_rejected(self):
        assert decode_dynamic_parm_vals("<parameter><value>5</value></parameter>") is None

    def test_malformed_xml(self):
        assert decode_dynamic_parm_vals("<parameter><value>{}</parameter>") is None

    def test_trailing_content_after_parameter_is_ignored(self):
        xml = "<parameter><value>{&amp;quot;a&amp;quot;:1}</value></parameter>\n<parameter/>"
        assert decode_dynamic_parm_vals(xml) == '{"a":1}'

    def test_missing_value(self):
        assert decode_dynamic_parm_vals("<parameter></parameter>") is None

    @pytest.mark.parametrize("value", ["", None])
    def test_empty(self, value):
        assert decode_dynamic_parm_vals(value) is None

    def test_unescape_is_narrow(self):
        assert unescape_param_entities("&quot;&lt;&gt;&amp;&apos;") == '"<>&amp;&apos;'
