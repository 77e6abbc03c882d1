# -*- coding: utf-8 -*-

import unittest

from settee.tests import test_client, test_design, test_package, test_placeholders, \
    test_session, test_streaming


def suite():
    suite = unittest.TestSuite()
    suite.addTest(test_client.suite())
    suite.addTest(test_design.suite())
    suite.addTest(test_package.suite())
    suite.addTest(test_placeholders.suite())
    suite.addTest(test_session.suite())
    suite.addTest(test_streaming.suite())
    return suite


if __name__ == '__main__':
    unittest.main(defaultTest='suite')
