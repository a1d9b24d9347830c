"""Deep "show all" links from a digest back to the site's search page."""

from agent_digest.domain.models import DigestType, Subscriber

BASE_PATHS = {
    DigestType.VACANCIES: "/jobs",
    DigestType.CV: "/cv",
}


def build_show_all_link(subscriber: Subscriber) -> str:
    """Build the site-relative link listing everything the agent matches.

    Layout: base path, then "?location=<ids>/" for non-worldwide locations,
    then "&profession=<ids>/" ("?" when no location segment was written),
    then the keyword string appended verbatim. Ids are joined with ".".

    Example:
        CV agent with locations 3, 7 and profession 12 ->
        "/cv?location=3.7/&profession=12/"
    """
    link = BASE_PATHS.get(subscriber.digest_type, "")
    has_query = False

    location_ids = [str(location_id) for location_id in subscriber.regional_locations()]
    if location_ids:
        link += "?location=" + ".".join(location_ids) + "/"
        has_query = True

    profession_ids = [str(profession_id) for profession_id in subscriber.professions]
    if profession_ids:
        link += "&" if has_query else "?"
        link += "profession=" + ".".join(profession_ids) + "/"

    link += subscriber.keywords

    return link
