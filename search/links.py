"""Pre-built search links for hunting down residue of a misremembered detail."""

from urllib.parse import quote, quote_plus

from models.records import SearchLink

from .relevance import is_cyrillic

GOOGLE = "https://www.google.com/search?q={q}"


def _google(query: str) -> str:
    return GOOGLE.format(q=quote_plus(query))


def residue_search_links(subject: str) -> list[SearchLink]:
    subject = (subject or "").strip()
    if not subject:
        return []

    links: list[SearchLink] = []
    if is_cyrillic(subject):
        links.append(
            SearchLink(
                platform="Blogs",
                title="Forum discussions",
                url=_google(f'"{subject}" (форум OR обсуждение OR "я помню") -статья -новости'),
                description="Live discussions, excluding news outlets",
            )
        )
        links.append(
            SearchLink(
                platform="Google",
                title="Otvet Mail.ru before 2015",
                url=_google(f'site:otvet.mail.ru "{subject}" before:2015'),
                description="Mentions from before the phenomenon went viral",
            )
        )
    else:
        links.append(
            SearchLink(
                platform="Reddit",
                title="Reddit residue",
                url=_google(f'site:reddit.com (r/Retconned OR r/MandelaEffect) "{subject}" residue'),
                description="Residue threads found through Google",
            )
        )
        links.append(
            SearchLink(
                platform="eBay",
                title="eBay vintage listings",
                url=f"https://www.ebay.com/sch/i.html?_nkw={quote(subject + ' vintage')}&_sacat=0&LH_TitleDesc=0",
                description="Vintage items that may show the old version",
            )
        )
        links.append(
            SearchLink(
                platform="Google",
                title="Flickr/Pinterest",
                url=_google(f'site:flickr.com OR site:pinterest.com "{subject}" vintage photo'),
                description="Amateur photos in archives",
            )
        )

    links.append(
        SearchLink(
            platform="YouTube",
            title="YouTube VHS",
            url=f"https://www.youtube.com/results?search_query={quote_plus(subject + ' vhs commercial 90s')}",
            description="TV recordings",
        )
    )
    return links
