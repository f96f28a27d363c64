import os

DEFAULT_BASE_URL = os.environ.get("BASE_URL", "http://localhost:4173")

# SvelteKit routing conventions
ROUTES_DIR_PARTS = ("src", "routes")
PAGE_MARKER = "+page.svelte"
HIDDEN_PREFIX = "."
GROUP_DELIMITERS = ("(", ")")
DYNAMIC_DELIMITERS = ("[", "]")

# Report output
REPORTS_DIR_NAME = "lighthouse-reports"
REPORT_DIR_PREFIX = "report-"
INDEX_FILENAME = "index.html"
SUMMARY_PDF_FILENAME = "summary.pdf"
ROOT_ARTIFACT_NAME = "root"

# Lighthouse CLI
LIGHTHOUSE_TIMEOUT = 300
CHROME_FLAGS = "--headless --no-sandbox --disable-gpu"

# Preflight check of the base URL
PREFLIGHT_TIMEOUT = 5
USER_AGENT = (
    "Mozilla/5.0 (compatible; LighthouseRunner/1.1; +https://github.com/lighthouse-runner)"
)

# Shared browser used for authenticated runs
BROWSER_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]
AUTH_STEP_TIMEOUT_MS = 30_000

# Lighthouse category ids -> field names on CategoryScores
CATEGORY_FIELDS = {
    "performance": "performance",
    "accessibility": "accessibility",
    "best-practices": "best_practices",
    "seo": "seo",
}

CATEGORY_LABELS: dict[str, str] = {
    "performance": "Performance",
    "accessibility": "Accessibility",
    "best_practices": "Best Practices",
    "seo": "SEO",
}
