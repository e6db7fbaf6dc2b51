"""Tests for casestudy.decoder module."""
import pytest

from casestudy.block_types import (
    BLOCK_KINDS,
    ComparisonBlock,
    CtaBlock,
    GalleryBlock,
    MalformedBlock,
    MarketingBlock,
    MetricsBlock,
    PricingBlock,
    QuoteBlock,
    TechStackBlock,
    TimelineBlock,
    UnknownBlock,
    decoded_block_to_dict,
)
from casestudy.decoder import (
    DecodeResult,
    body_lines,
    decode_block,
    is_known_block_type,
    normalize_winner,
    split_table,
    trend_direction,
)


def _codes(result: DecodeResult) -> list[str]:
    return [w.code for w in result.warnings]


class TestGenericGrammar:
    def test_body_lines_skip_blanks_and_trim(self) -> None:
        assert body_lines("  a,b \n\n  \n c \n") == ["a,b", "c"]

    def test_body_lines_unescape_delimiter(self) -> None:
        assert body_lines("\\:::\nx") == [":::", "x"]

    def test_split_table(self) -> None:
        headers, rows = split_table(["a, b", " 1 ,2", "3,4,5"])
        assert headers == ("a", "b")
        assert rows == (("1", "2"), ("3", "4", "5"))

    def test_split_table_empty(self) -> None:
        assert split_table([]) == ((), ())


class TestQuote:
    def test_key_value_lines(self) -> None:
        result = decode_block("quote", "quote: Great tool\nauthor: Jane\n")
        block = result.block
        assert isinstance(block, QuoteBlock)
        assert block.quote == "Great tool"
        assert block.author == "Jane"
        assert block.role == ""
        assert block.company == ""
        assert result.warnings == ()

    def test_value_may_contain_colon(self) -> None:
        body = "quote: Latency: down 40%\nauthor: Jane\nrole: CTO\ncompany: Acme"
        block = decode_block("quote", body).block
        assert isinstance(block, QuoteBlock)
        assert block.quote == "Latency: down 40%"
        assert block.role == "CTO"
        assert block.company == "Acme"

    def test_keys_case_folded(self) -> None:
        block = decode_block("quote", "Quote: Hi\nAuthor: Bob").block
        assert isinstance(block, QuoteBlock)
        assert (block.quote, block.author) == ("Hi", "Bob")

    def test_missing_author_is_malformed(self) -> None:
        block = decode_block("quote", "quote: Alone").block
        assert isinstance(block, MalformedBlock)
        assert "author" in block.reason

    def test_invalid_and_unknown_lines_warn(self) -> None:
        result = decode_block("quote", "quote: Hi\nauthor: Bo\nno colon here\nmood: happy")
        assert isinstance(result.block, QuoteBlock)
        assert _codes(result) == ["invalid_quote_line", "unknown_quote_key"]


class TestTimeline:
    def test_description_rejoins_extra_commas(self) -> None:
        body = "Phase 1, Discovery, 2 weeks, Interviews, audits, and analysis\n"
        block = decode_block("timeline", body).block
        assert isinstance(block, TimelineBlock)
        assert block.headers == ()
        phase = block.phases[0]
        assert phase.phase == "Phase 1"
        assert phase.title == "Discovery"
        assert phase.duration == "2 weeks"
        assert phase.description == "Interviews, audits, and analysis"

    def test_every_line_is_a_phase(self) -> None:
        body = "P1, Plan, 1w, Scope\nP2, Build, 4w, Ship it"
        block = decode_block("timeline", body).block
        assert isinstance(block, TimelineBlock)
        assert [p.title for p in block.phases] == ["Plan", "Build"]

    def test_short_line_padded(self) -> None:
        result = decode_block("timeline", "Phase 1, Discovery")
        block = result.block
        assert isinstance(block, TimelineBlock)
        assert block.phases[0].duration == ""
        assert block.phases[0].description == ""
        assert _codes(result) == ["short_row"]


class TestPositionalTypes:
    def test_pricing(self) -> None:
        body = "Plan,Price,Features,Target\nStarter,$29/mo,Basic bots,SMBs\nPro,$99/mo,Advanced,Growth"
        block = decode_block("pricing", body).block
        assert isinstance(block, PricingBlock)
        assert block.headers == ("Plan", "Price", "Features", "Target")
        assert [t.plan for t in block.tiers] == ["Starter", "Pro"]
        assert block.tiers[0].target_market == "SMBs"

    def test_header_only_is_malformed(self) -> None:
        block = decode_block("pricing", "Plan,Price,Features,Target").block
        assert isinstance(block, MalformedBlock)
        assert block.reason == "no pricing rows"
        assert block.headers == ("Plan", "Price", "Features", "Target")

    def test_short_row_padded(self) -> None:
        result = decode_block("pricing", "Plan,Price\nStarter,$29")
        block = result.block
        assert isinstance(block, PricingBlock)
        assert block.tiers[0].features == ""
        assert block.tiers[0].target_market == ""
        assert _codes(result) == ["short_row"]

    def test_empty_row_skipped(self) -> None:
        result = decode_block("techstack", "Category,Tech,Why\n , , \nBackend,FastAPI,Async")
        block = result.block
        assert isinstance(block, TechStackBlock)
        assert len(block.items) == 1
        assert _codes(result) == ["unusable_row"]

    def test_techstack(self) -> None:
        body = "Category,Technology,Reason\nFrontend,Next.js,SSR\nAI/ML,OpenAI,Quality"
        block = decode_block("techstack", body).block
        assert isinstance(block, TechStackBlock)
        assert block.items[1].category == "AI/ML"
        assert block.items[1].reason == "Quality"

    def test_marketing(self) -> None:
        body = "Site,URL,Purpose,Performance\nLanding,https://x.io,Signups,High conversion"
        block = decode_block("marketing", body).block
        assert isinstance(block, MarketingBlock)
        assert block.sites[0].url == "https://x.io"
        assert block.sites[0].performance == "High conversion"

    def test_comparison_winners(self) -> None:
        body = (
            "Category,Tendril,Competitors,Winner\n"
            "Setup time,5 min,2 days,Tendril\n"
            "Cost,$99,$99,equal\n"
            "Integrations,10,50,competitor\n"
            "Support,24/7,Email,"
        )
        block = decode_block("comparison", body).block
        assert isinstance(block, ComparisonBlock)
        assert [r.winner for r in block.comparisons] == ["subject", "equal", "competitor", None]
        assert block.comparisons[0].competitor_value == "2 days"

    def test_unrecognized_winner_gets_no_badge(self) -> None:
        body = "Category,Tendril,Competitors,Winner\nSetup,5 min,2 days,N/A\nCost,$9,$9,both"
        result = decode_block("comparison", body)
        block = result.block
        assert isinstance(block, ComparisonBlock)
        assert [r.winner for r in block.comparisons] == [None, "equal"]
        assert _codes(result) == ["unknown_winner"]

    def test_comparison_long_row_reported(self) -> None:
        result = decode_block("comparison", "C,Us,Them,W\nSpeed,1,2,us,extra")
        block = result.block
        assert isinstance(block, ComparisonBlock)
        assert block.comparisons[0].winner == "subject"
        assert _codes(result) == ["long_row"]

    def test_pricing_commas_rejoined_into_features(self) -> None:
        result = decode_block("pricing", "Plan,Price,Features,Target\nPro,$49,SSO, audit logs,Enterprises")
        block = result.block
        assert isinstance(block, PricingBlock)
        tier = block.tiers[0]
        assert tier.features == "SSO, audit logs"
        assert tier.target_market == "Enterprises"
        assert result.warnings == ()

    def test_techstack_commas_rejoined_into_reason(self) -> None:
        block = decode_block("techstack", "Category,Tech,Why\nBackend,FastAPI,Async, typed, fast").block
        assert isinstance(block, TechStackBlock)
        assert block.items[0].reason == "Async, typed, fast"

    def test_metrics_trend_direction(self) -> None:
        body = "Metric,Value,Trend\nRevenue,$1.2M,+35%\nChurn,2%,-1.5%\nNPS,72,"
        block = decode_block("metrics", body).block
        assert isinstance(block, MetricsBlock)
        assert [m.trend_direction for m in block.metrics] == ["up", "down", "neutral"]
        assert block.metrics[0].value == "$1.2M"

    def test_kpis_share_metrics_shape(self) -> None:
        block = decode_block("kpis", "Label,Value,Trend\nMRR,$40k,+12%").block
        assert isinstance(block, MetricsBlock)
        assert block.block_type == "kpis"

    def test_gallery_skips_rows_without_url(self) -> None:
        result = decode_block("gallery", "url,alt\nhttps://x/a.png,Dashboard\n,No url")
        block = result.block
        assert isinstance(block, GalleryBlock)
        assert [i.alt for i in block.images] == ["Dashboard"]
        assert _codes(result) == ["unusable_row"]

    def test_cta_uses_first_row(self) -> None:
        body = "title,subtitle,cta,href\nReady?,Let us talk,Book a call,/contact\nExtra,row,here,/x"
        result = decode_block("cta", body)
        block = result.block
        assert isinstance(block, CtaBlock)
        assert (block.title, block.cta_text, block.href) == ("Ready?", "Book a call", "/contact")
        assert _codes(result) == ["extra_rows"]


class TestUnknownAndMalformed:
    def test_unknown_type_decodes_structurally(self) -> None:
        result = decode_block("bogus", "a,b\n1,2\n")
        block = result.block
        assert isinstance(block, UnknownBlock)
        assert block.block_type == "bogus"
        assert block.headers == ("a", "b")
        assert block.rows == (("1", "2"),)
        assert _codes(result) == ["unknown_block_type"]

    def test_type_name_case_insensitive(self) -> None:
        block = decode_block("Pricing", "Plan,Price,Features,Target\nA,1,f,t").block
        assert isinstance(block, PricingBlock)
        assert block.block_type == "pricing"

    def test_empty_body_is_malformed(self) -> None:
        result = decode_block("metrics", "\n  \n")
        assert isinstance(result.block, MalformedBlock)
        assert _codes(result) == ["empty_block"]

    @pytest.mark.parametrize("block_type", [*BLOCK_KINDS, "bogus"])
    @pytest.mark.parametrize("body", [",,,", "\n\n", ":", "::::", "a" * 500, "\\:::", "x,y\n,\n"])
    def test_decoding_never_raises(self, block_type: str, body: str) -> None:
        result = decode_block(block_type, body)
        assert isinstance(result, DecodeResult)

    def test_is_known_block_type(self) -> None:
        assert is_known_block_type("KPIs")
        assert not is_known_block_type("bogus")


class TestFieldNormalization:
    @pytest.mark.parametrize(("raw", "expected"), [
        ("Tendril", "subject"),
        ("ours", "subject"),
        ("competitor", "competitor"),
        ("Competitors", "competitor"),
        ("equal", "equal"),
        ("Tie", "equal"),
        ("both", "equal"),
        ("N/A", None),
        ("tbd", None),
        ("", None),
    ])
    def test_normalize_winner(self, raw: str, expected: str | None) -> None:
        assert normalize_winner(raw, ["Tendril"]) == expected

    def test_product_name_needs_header(self) -> None:
        assert normalize_winner("Tendril") is None

    @pytest.mark.parametrize(("trend", "expected"), [
        ("+35%", "up"),
        ("↑ 12", "up"),
        ("Up 3x", "up"),
        ("-2%", "down"),
        ("↓ 5", "down"),
        ("flat", "neutral"),
        ("", "neutral"),
    ])
    def test_trend_direction(self, trend: str, expected: str) -> None:
        assert trend_direction(trend) == expected


class TestDecodedBlockToDict:
    def test_quote_payload(self) -> None:
        block = decode_block("quote", "quote: Great tool\nauthor: Jane").block
        payload = decoded_block_to_dict(block)
        assert payload["kind"] == "quote"
        assert payload["quote"] == "Great tool"
        assert payload["author"] == "Jane"
        assert payload["rows"] == [["quote", "Great tool"], ["author", "Jane"]]

    def test_nested_records_become_dicts(self) -> None:
        block = decode_block("gallery", "url,alt\nhttps://x/a.png,Shot").block
        payload = decoded_block_to_dict(block)
        assert payload["images"] == [{"url": "https://x/a.png", "alt": "Shot"}]
