from __future__ import annotations

import logging

from selenium import webdriver
from selenium.webdriver import ChromeOptions, FirefoxOptions

from selfheal.config.schema import EnvironmentConfig

logger = logging.getLogger(__name__)

_CHROME_ARGUMENTS = ("--window-size=1440,1200", "--disable-dev-shm-usage")


class BrowserSession:
    """Starts a Selenium Manager driver that is positioned on the top-level document."""

    def __init__(self, environment: EnvironmentConfig) -> None:
        self.environment = environment

    def options_for(self, browser_name: str) -> ChromeOptions | FirefoxOptions:
        if browser_name == "chrome":
            options = ChromeOptions()
            for argument in _CHROME_ARGUMENTS:
                options.add_argument(argument)
            if self.environment.headless:
                options.add_argument("--headless=new")
            return options
        if browser_name == "firefox":
            options = FirefoxOptions()
            if self.environment.headless:
                options.add_argument("-headless")
            return options
        raise ValueError(f"Unsupported browser: {browser_name}")

    def start(self, browser_name: str | None = None):
        name = (browser_name or self.environment.browser).lower()
        options = self.options_for(name)
        driver = webdriver.Chrome(options=options) if name == "chrome" else webdriver.Firefox(options=options)
        # Candidate extraction and lookups rely on explicit polling, never implicit waits.
        driver.implicitly_wait(0)
        driver.set_page_load_timeout(self.environment.default_timeout_seconds)
        if self.environment.base_url:
            driver.get(self.environment.base_url)
        driver.switch_to.default_content()
        logger.info("Started %s session headless=%s", name, self.environment.headless)
        return driver
