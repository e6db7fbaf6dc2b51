"""Tests for casestudy.dispatch module."""
import logging

import pytest

from casestudy.block_types import MalformedBlock, PricingBlock
from casestudy.decoder import decode_block
from casestudy.dispatch import (
    DEFAULT_COMPARISON_COLUMNS,
    performance_accent,
    render_block,
    render_block_safe,
    tech_category_style,
)
from casestudy.render_types import RenderDirective, directive_to_dict


def _render(block_type: str, body: str) -> RenderDirective:
    return render_block(decode_block(block_type, body).block)


class TestCardContainers:
    def test_pricing_second_tier_featured(self) -> None:
        directive = _render(
            "pricing",
            "Plan,Price,Features,Target\nStarter,$29,Basic,SMB\nPro,$99,All,Growth\nEnterprise,Custom,SSO,Large",
        )
        assert directive.component == "pricing_table"
        assert not directive.collection
        assert [c.props["featured"] for c in directive.children] == [False, True, False]
        assert directive.children[1].props["badge"] == "Most Popular"
        assert directive.children[0].props["plan"] == "Starter"

    @pytest.mark.parametrize(("category", "expected"), [
        ("Frontend", ("code", "blue")),
        ("backend", ("server", "green")),
        ("AI/ML", ("zap", "orange")),
        (" Database ", ("database", "purple")),
        ("Quantum", ("code", "blue")),
    ])
    def test_tech_category_style(self, category: str, expected: tuple[str, str]) -> None:
        assert tech_category_style(category) == expected

    def test_techstack_cards(self) -> None:
        directive = _render("techstack", "Category,Tech,Why\nDeployment,Vercel,Edge")
        assert directive.component == "tech_stack"
        card = directive.children[0]
        assert card.component == "tech_card"
        assert (card.props["icon"], card.props["accent"]) == ("globe", "red")

    @pytest.mark.parametrize(("performance", "expected"), [
        ("High conversion", "green"),
        ("Medium", "yellow"),
        ("low traffic", "red"),
        ("n/a", "blue"),
    ])
    def test_performance_accent(self, performance: str, expected: str) -> None:
        assert performance_accent(performance) == expected

    def test_marketing_sites(self) -> None:
        directive = _render("marketing", "Site,URL,Purpose,Performance\nBlog,https://b.io,SEO,Medium")
        assert directive.component == "marketing_sites"
        assert directive.children[0].props["accent"] == "yellow"

    def test_timeline_marks_last_phase(self) -> None:
        directive = _render("timeline", "P1, Plan, 1w, Scope\nP2, Build, 4w, Ship")
        assert directive.component == "timeline"
        assert [c.props["is_last"] for c in directive.children] == [False, True]


class TestCollections:
    def test_comparison_is_collection_with_header_labels(self) -> None:
        body = "Category,Tendril,Others,Winner\nSpeed,Fast,Slow,Tendril\nCost,$9,$9,tie\nReach,1,9,competitor"
        directive = _render("comparison", body)
        assert directive.component == "comparison_table"
        assert directive.collection
        assert directive.props["columns"] == ["Category", "Tendril", "Others", "Winner"]
        assert [c.props["winner_label"] for c in directive.children] == ["Tendril", "Equal", "Competitor"]

    def test_comparison_default_columns(self) -> None:
        directive = _render("comparison", "a,b\nSpeed,Fast,Slow,ours")
        assert directive.props["columns"] == list(DEFAULT_COMPARISON_COLUMNS)
        assert directive.children[0].props["winner_label"] == "Ours"

    @pytest.mark.parametrize("block_type", ["metrics", "kpis"])
    def test_metrics_grid(self, block_type: str) -> None:
        directive = _render(block_type, "Metric,Value,Trend\nRevenue,$1M,+10%\nChurn,2%,-1%")
        assert directive.component == "metrics_grid"
        assert directive.collection
        assert directive.props["columns"] == 2
        assert directive.props["source_type"] == block_type
        assert [c.props["trend_direction"] for c in directive.children] == ["up", "down"]

    def test_metrics_columns_capped(self) -> None:
        body = "Metric,Value,Trend\n" + "\n".join(f"M{i},{i},+1" for i in range(6))
        assert _render("metrics", body).props["columns"] == 4

    def test_gallery(self) -> None:
        directive = _render("gallery", "url,alt\nhttps://x/a.png,A\nhttps://x/b.png,B")
        assert directive.component == "gallery"
        assert directive.collection
        assert [c.props["alt"] for c in directive.children] == ["A", "B"]


class TestSingleDirectives:
    def test_quote_attribution(self) -> None:
        directive = _render("quote", "quote: Great tool\nauthor: Jane\nrole: CTO\ncompany: Acme")
        assert directive.component == "quote_card"
        assert directive.children == ()
        assert directive.props["attribution"] == "CTO at Acme"

    def test_quote_without_role(self) -> None:
        directive = _render("quote", "quote: Great tool\nauthor: Jane\ncompany: Acme")
        assert directive.props["attribution"] == "Acme"

    def test_cta_banner(self) -> None:
        directive = _render("cta", "t,s,c,h\nReady?,Talk to us,Book,/contact")
        assert directive.component == "cta_banner"
        assert directive.props == {
            "title": "Ready?",
            "subtitle": "Talk to us",
            "cta_text": "Book",
            "href": "/contact",
        }


class TestDiagnostics:
    def test_unknown_block_type(self) -> None:
        directive = _render("bogus", "a,b\n1,2")
        assert directive.is_diagnostic
        assert directive.props["reason"] == "unknown_block_type"
        assert directive.props["message"] == "Unknown block type: bogus"
        assert directive.props["rows"] == [["1", "2"]]

    def test_malformed_block(self) -> None:
        block = MalformedBlock(block_type="quote", raw_body="nothing\n", reason="no quote")
        directive = render_block(block)
        assert directive.is_diagnostic
        assert directive.props["reason"] == "malformed_block"
        assert directive.props["raw_body"] == "nothing\n"

    def test_renderer_failure_becomes_diagnostic(self, caplog: pytest.LogCaptureFixture) -> None:
        block = PricingBlock(block_type="pricing", headers=(), rows=(), tiers=(None,))  # type: ignore[arg-type]
        with caplog.at_level(logging.WARNING, logger="casestudy.dispatch"):
            directive = render_block_safe(block)
        assert directive.is_diagnostic
        assert directive.props["reason"] == "render_error"
        assert directive.props["message"].startswith("Error rendering block pricing:")
        assert any("pricing" in r.getMessage() for r in caplog.records)

    def test_render_block_safe_passthrough(self) -> None:
        block = decode_block("cta", "t,s,c,h\nA,B,C,/d").block
        assert render_block_safe(block) == render_block(block)

    def test_unregistered_type_raises(self) -> None:
        with pytest.raises(TypeError, match="no renderer"):
            render_block(object())  # type: ignore[arg-type]


class TestDirectiveToDict:
    def test_nested_structure(self) -> None:
        directive = _render("gallery", "url,alt\nhttps://x/a.png,A")
        payload = directive_to_dict(directive)
        assert payload["component"] == "gallery"
        assert payload["collection"] is True
        assert payload["children"] == [{
            "component": "gallery_image",
            "collection": False,
            "props": {"alt": "A", "url": "https://x/a.png"},
            "children": [],
        }]

    def test_props_sorted(self) -> None:
        payload = directive_to_dict(_render("cta", "t,s,c,h\nA,B,C,/d"))
        assert list(payload["props"]) == ["cta_text", "href", "subtitle", "title"]  # type: ignore[call-overload]


class TestMetricIcons:
    def test_only_kpi_cards_carry_icon(self) -> None:
        body = "Metric,Value,Trend\nMRR,$40k,+12%"
        assert _render("kpis", body).children[0].props["icon"] == "dollar-sign"
        assert _render("metrics", body).children[0].props["icon"] == ""
