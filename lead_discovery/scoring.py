"""Turn a qualifying business into a scored :class:`Lead`."""
from __future__ import annotations

from typing import Optional, Sequence

from .classifier import DEFAULT_RULES, WebsiteRule, match_rule
from .models import Lead, ProspectDecision, ProspectReason, ScrapedBusiness, SearchTerm
from .quality.base import round_half_up

# Website quality assumed for each rule outcome; 0 is the best prospect.
RULE_QUALITY = {
    ProspectReason.SOCIAL_OR_DIRECTORY: 15,
    ProspectReason.DIY_PLATFORM: 25,
}
UNANALYSED_QUALITY = 70
DEFAULT_RATING = 4.0


def website_quality_score(
    website: Optional[str],
    quality_score: Optional[int] = None,
    rules: Sequence[WebsiteRule] = DEFAULT_RULES,
) -> int:
    if not website:
        return 0
    rule = match_rule(website, rules)
    if rule is not None and rule.reason in RULE_QUALITY:
        return RULE_QUALITY[rule.reason]
    if quality_score is not None:
        return quality_score
    return UNANALYSED_QUALITY


def compute_lead_score(
    rating: Optional[float],
    review_count: Optional[int],
    website_quality: int,
) -> int:
    """Weight rating, review volume and (inverted) website quality into 0-100."""

    score = round_half_up(
        (rating if rating is not None else DEFAULT_RATING) * 15
        + min((review_count or 0) / 10, 20)
        + (100 - website_quality) * 0.4
    )
    return max(0, min(100, score))


def build_notes(business: ScrapedBusiness, decision: ProspectDecision) -> str:
    reason = decision.reason
    if reason is ProspectReason.NO_WEBSITE:
        prospect_note = "NO WEBSITE - perfect prospect."
    elif reason is ProspectReason.SOCIAL_OR_DIRECTORY:
        prospect_note = "Only has a social media/directory listing - great prospect."
    elif reason is ProspectReason.DIY_PLATFORM:
        prospect_note = "Has a DIY website platform - good prospect for an upgrade."
    elif decision.quality is not None:
        quality = decision.quality
        prospect_note = (
            f"Website quality score: {decision.quality_score}/100 "
            f"(Perf: {quality.performance}, SEO: {quality.seo}, A11y: {quality.accessibility})"
        )
        if quality.issues:
            prospect_note += f" | Issues: {', '.join(quality.issues[:3])}"
    else:
        prospect_note = f"Website: {business.website}"

    parts = [
        "Scraped from Google Maps.",
        prospect_note,
        f"Additional phones: {', '.join(business.phones[1:])}" if len(business.phones) > 1 else "",
        f"Emails found: {', '.join(business.emails)}" if business.emails else "",
    ]
    return " ".join(part for part in parts if part)


def build_lead(
    business: ScrapedBusiness,
    term: SearchTerm,
    decision: ProspectDecision,
    rules: Sequence[WebsiteRule] = DEFAULT_RULES,
) -> Lead:
    website_quality = website_quality_score(business.website, decision.quality_score, rules)
    metadata = {
        "phones": list(business.phones),
        "emails": list(business.emails),
        "category": business.category,
        "prospectReason": decision.reason.value,
    }
    if decision.quality is not None:
        metadata["qualityAnalysis"] = decision.quality.as_metadata()

    website = business.website
    return Lead(
        business_name=business.name,
        location=term.location,
        industry=term.category,
        source_url=business.source_url,
        address=business.address,
        phone=business.primary_phone,
        email=business.primary_email,
        phones=list(business.phones),
        emails=list(business.emails),
        website=website,
        rating=business.rating,
        review_count=business.review_count,
        facebook_url=website if website and "facebook.com" in website.lower() else None,
        website_quality_score=website_quality,
        lead_score=compute_lead_score(business.rating, business.review_count, website_quality),
        notes=build_notes(business, decision),
        metadata=metadata,
    )


__all__ = ["build_lead", "build_notes", "compute_lead_score", "website_quality_score"]
