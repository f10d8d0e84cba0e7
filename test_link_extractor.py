
import unittest

from verification.link_extractor import extract_links, normalize_link


class TestLinkExtractor(unittest.TestCase):

    def test_normalize_strips_escaped_newline_artifact(self):
        self.assertEqual(normalize_link("nhttps://t.me/abc"), "https://t.me/abc")
        self.assertEqual(normalize_link("nhttp://mytoken.io"), "http://mytoken.io")

    def test_normalize_is_idempotent(self):
        once = normalize_link("nhttps://mytoken.io")
        self.assertEqual(normalize_link(once), once)
        self.assertEqual(normalize_link("https://news.io"), "https://news.io")

    def test_extraction_is_idempotent(self):
        source = r"// Site: https://Gem.io\n// TG:\nhttps://t.me/GemPortal\n// https://x.com/GemToken"
        links = extract_links(source)

        again = extract_links(" ".join([links.website, links.telegram, links.x]))
        self.assertEqual(again, links)
        self.assertTrue(again.is_complete())

    def test_escaped_json_source(self):
        # Etherscan returns the source with literal \n sequences
        source = r"// SPDX-License-Identifier: MIT\n// Website: https://MyToken.io\n// TG:\nhttps://t.me/MyTokenPortal\n"
        links = extract_links(source)

        self.assertEqual(links.website, "https://mytoken.io")
        self.assertEqual(links.telegram, "https://t.me/mytokenportal")
        self.assertIsNone(links.x)

    def test_all_three_slots(self):
        source = """
        /**
         * Website: https://pepe2.vip
         * Telegram: https://t.me/pepe2portal
         * Twitter: https://twitter.com/pepe2
         */
        pragma solidity ^0.8.20;
        """
        links = extract_links(source)

        self.assertEqual(links.website, "https://pepe2.vip")
        self.assertEqual(links.telegram, "https://t.me/pepe2portal")
        self.assertEqual(links.x, "https://twitter.com/pepe2")
        self.assertTrue(links.is_complete())

    def test_slots_are_write_once(self):
        source = """
        https://t.me/first https://t.me/second
        https://x.com/first https://x.com/second
        https://first.io https://second.io
        """
        links = extract_links(source)

        self.assertEqual(links.telegram, "https://t.me/first")
        self.assertEqual(links.x, "https://x.com/first")
        self.assertEqual(links.website, "https://first.io")

    def test_reference_links_never_become_website(self):
        source = """
        // OpenZeppelin Contracts (https://github.com/OpenZeppelin/openzeppelin-contracts)
        // See https://eips.ethereum.org/EIPS/eip-20
        // https://docs.soliditylang.org/en/latest/
        // Verified on https://etherscan.io/address/0xabc
        """
        links = extract_links(source)
        self.assertIsNone(links.website)

    def test_social_links_stay_out_of_website_slot(self):
        links = extract_links("https://t.me/only https://x.com/only")

        self.assertIsNone(links.website)
        self.assertEqual(links.telegram, "https://t.me/only")
        self.assertEqual(links.x, "https://x.com/only")

    def test_no_links(self):
        links = extract_links("contract Token is ERC20 { }")
        self.assertIsNone(links.website)
        self.assertIsNone(links.telegram)
        self.assertIsNone(links.x)
        self.assertFalse(links.is_complete())

    def test_empty_source(self):
        self.assertFalse(extract_links("").is_complete())
        self.assertIsNone(extract_links(None).website)


if __name__ == '__main__':
    unittest.main()
