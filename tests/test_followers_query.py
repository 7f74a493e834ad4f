import unittest

from followable.services.follow_results import FollowQuery, MixedResults
from tests.base import FollowableTestCase
from tests.models import Organization, User


class TestFollowersQuery(FollowableTestCase):
    def setUp(self):
        super().setUp()
        self.team = self._team("Team Alpha")
        self.user1 = self._user("John Doe")
        self.user2 = self._user("Jane Doe")
        self.user3 = self._user("Bob Smith")
        self.org = self._org("Acme Corp")

    def test_followers_returns_entities(self):
        self.service.follow(self.user1, self.team)
        self.service.follow(self.user2, self.team)

        followers = self.service.followers(self.team)

        self.assertIsInstance(followers, FollowQuery)
        self.assertEqual(self._ids(followers.all()), [self.user1.id, self.user2.id])

    def test_followers_empty(self):
        self.assertEqual(self.service.followers(self.team).all(), [])
        self.assertEqual(self.service.followers_count(self.team), 0)

    def test_followers_ordered_most_recent_first(self):
        self.service.follow(self.user1, self.team)
        self.service.follow(self.user2, self.team)
        self.service.follow(self.user3, self.team)
        self._stamp(self.user1, self.team, 3)
        self._stamp(self.user2, self.team, 1)
        self._stamp(self.user3, self.team, 2)

        followers = self.service.followers(self.team).all()

        self.assertEqual(
            [user.id for user in followers],
            [self.user1.id, self.user3.id, self.user2.id],
        )

    def test_mixed_follower_types_are_merged_by_follow_time(self):
        self.service.follow(self.user1, self.team)
        self.service.follow(self.org, self.team)
        self.service.follow(self.user2, self.team)
        self._stamp(self.user1, self.team, 0)
        self._stamp(self.org, self.team, 1)
        self._stamp(self.user2, self.team, 2)

        followers = self.service.followers(self.team)

        self.assertIsInstance(followers, MixedResults)
        self.assertEqual(
            [(type(entity), entity.id) for entity in followers],
            [(User, self.user2.id), (Organization, self.org.id), (User, self.user1.id)],
        )

    def test_followers_with_type_filter(self):
        self.service.follow(self.user1, self.team)
        self.service.follow(self.org, self.team)

        users = self.service.followers(self.team, User).all()
        orgs = self.service.followers_of_type(self.team, [Organization]).all()

        self.assertEqual([user.id for user in users], [self.user1.id])
        self.assertEqual([org.id for org in orgs], [self.org.id])

    def test_followers_of_several_types(self):
        self.service.follow(self.user1, self.team)
        self.service.follow(self.org, self.team)
        self.service.follow(self.user2, self.team)

        followers = self.service.followers_of_type(self.team, [User, Organization])

        self.assertIsInstance(followers, MixedResults)
        self.assertEqual(followers.count(), 3)

    def test_followers_count_by_type(self):
        self.service.follow(self.user1, self.team)
        self.service.follow(self.user2, self.team)
        self.service.follow(self.org, self.team)

        self.assertEqual(self.service.followers_count(self.team), 3)
        self.assertEqual(self.service.followers_count(self.team, User), 2)
        self.assertEqual(self.service.followers_count(self.team, Organization), 1)

    def test_followers_grouped(self):
        self.service.follow(self.user1, self.team)
        self.service.follow(self.user2, self.team)
        self.service.follow(self.org, self.team)

        grouped = self.service.followers_grouped(self.team)
        user_type = self.registry.canonical_type_of(User)
        org_type = self.registry.canonical_type_of(Organization)

        self.assertEqual(set(grouped), {user_type, org_type})
        self.assertEqual(self._ids(grouped[user_type]), [self.user1.id, self.user2.id])
        self.assertEqual([org.id for org in grouped[org_type]], [self.org.id])

    def test_followers_paginated(self):
        self.service.follow(self.user1, self.team)
        self.service.follow(self.user2, self.team)
        self.service.follow(self.user3, self.team)

        page = self.service.followers_paginated(self.team, per_page=2, page=2)

        self.assertEqual(page.total, 3)
        self.assertEqual(page.page, 2)
        self.assertEqual(len(page), 1)
        self.assertFalse(page.has_next)

    def test_follower_records_return_edges(self):
        self.service.follow(self.user1, self.team, {"via": "invite"})

        records = self.service.follower_records(self.team).all()

        self.assertEqual(len(records), 1)
        self.assertEqual(records[0].follower_id, self.user1.id)
        self.assertEqual(records[0].metadata_, {"via": "invite"})

    def test_users_following_users(self):
        self.service.follow(self.user1, self.user2)
        self.service.follow(self.user3, self.user2)

        followers = self.service.followers(self.user2, User).all()

        self.assertEqual(self._ids(followers), [self.user1.id, self.user3.id])
        self.assertEqual(self.service.followers(self.team).all(), [])


if __name__ == "__main__":
    unittest.main()
