from django.urls import reverse
from rest_framework.test import APIClient, APITestCase

from loads.models import DispatchBlast
from services.dispatch import create_blast

from .factories import PICKUP, in_minutes, make_assigned_load, make_dispatcher, make_driver, make_load, north_of


class BlastApiTests(APITestCase):
    def setUp(self):
        self.dispatcher = make_dispatcher()
        self.driver_a = make_driver("driver_a", north_of(PICKUP, 3))
        self.driver_b = make_driver("driver_b", north_of(PICKUP, 8))
        self.driver_c = make_driver("driver_c", north_of(PICKUP, 15))
        self.load = make_load(dispatcher=self.dispatcher)

    def client_for(self, user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    def test_dispatcher_blasts_load(self):
        response = self.client_for(self.dispatcher).post(
            reverse('loads:blast-load', args=[self.load.id]),
            {'radius_miles': 10, 'expires_in_minutes': 15, 'message': 'Hot load', 'priority': 'urgent'},
            format='json',
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['blast']['drivers_notified'], 2)
        self.assertEqual(response.data['blast']['priority'], 'urgent')
        self.assertEqual(len(response.data['blast']['responses']), 2)

    def test_driver_cannot_blast(self):
        response = self.client_for(self.driver_a.user).post(
            reverse('loads:blast-load', args=[self.load.id]), {'radius_miles': 10}, format='json',
        )

        self.assertEqual(response.status_code, 403)
        self.assertFalse(DispatchBlast.objects.exists())

    def test_blast_validation_and_conflicts(self):
        client = self.client_for(self.dispatcher)
        url = reverse('loads:blast-load', args=[self.load.id])

        self.assertEqual(client.post(url, {'radius_miles': -1}, format='json').status_code, 400)
        self.assertEqual(client.post(url, {'radius_miles': 10}, format='json').status_code, 201)
        self.assertEqual(client.post(url, {'radius_miles': 10}, format='json').status_code, 409)
        self.assertEqual(
            client.post(reverse('loads:blast-load', args=[999999]), {}, format='json').status_code, 404,
        )

    def test_driver_lists_and_accepts_offer(self):
        blast = create_blast(self.load.id, radius_miles=10, expires_at=in_minutes(15))
        client_a = self.client_for(self.driver_a.user)
        client_b = self.client_for(self.driver_b.user)

        listing = client_a.get(reverse('loads:active-blasts'))
        self.assertEqual(listing.status_code, 200)
        self.assertEqual(listing.data['count'], 1)
        self.assertEqual(listing.data['blasts'][0]['id'], blast.id)
        self.assertEqual(listing.data['blasts'][0]['response_status'], 'notified')

        url = reverse('loads:respond-blast', args=[blast.id])
        won = client_b.post(url, {'action': 'accept'}, format='json')
        lost = client_a.post(url, {'action': 'accept'}, format='json')

        self.assertEqual(won.status_code, 200)
        self.assertTrue(won.data['success'])
        self.assertEqual(won.data['outcome'], 'assigned')
        self.assertEqual(lost.status_code, 200)
        self.assertFalse(lost.data['success'])
        self.assertEqual(lost.data['outcome'], 'already_assigned')
        self.assertEqual(lost.data['blast_status'], 'accepted')

        self.load.refresh_from_db()
        self.assertEqual(self.load.driver, self.driver_b)

    def test_driver_outside_radius_gets_404(self):
        blast = create_blast(self.load.id, radius_miles=10, expires_at=in_minutes(15))

        response = self.client_for(self.driver_c.user).post(
            reverse('loads:respond-blast', args=[blast.id]), {'action': 'accept'}, format='json',
        )

        self.assertEqual(response.status_code, 404)

    def test_cancel_blast(self):
        blast = create_blast(self.load.id, radius_miles=10, expires_at=in_minutes(15))
        client = self.client_for(self.dispatcher)
        url = reverse('loads:cancel-blast', args=[blast.id])

        first = client.post(url, {'reason': 'Customer cancelled'}, format='json')
        second = client.post(url, {}, format='json')

        self.assertEqual(first.status_code, 200)
        self.assertEqual(first.data['outcome'], 'cancelled')
        self.assertEqual(second.status_code, 409)
        self.assertEqual(second.data['outcome'], 'blast_cancelled')

    def test_blast_detail_shows_responses(self):
        blast = create_blast(self.load.id, radius_miles=10, expires_at=in_minutes(15))

        response = self.client_for(self.dispatcher).get(reverse('loads:blast-detail', args=[blast.id]))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            [r['driver']['username'] for r in response.data['responses']],
            ['driver_a', 'driver_b'],
        )


class LoadStatusApiTests(APITestCase):
    def setUp(self):
        self.dispatcher = make_dispatcher()
        self.driver = make_driver("maria", north_of(PICKUP, 1))
        self.other = make_driver("omar", north_of(PICKUP, 2))
        self.load = make_assigned_load(self.driver, dispatcher=self.dispatcher)

    def client_for(self, user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    def test_driver_moves_own_load(self):
        response = self.client_for(self.driver.user).post(
            reverse('loads:update-status', args=[self.load.id]),
            {'status': 'in_progress'},
            format='json',
        )

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data['changed'])
        self.assertEqual(response.data['load']['status'], 'in_progress')

    def test_driver_cannot_touch_someone_elses_load(self):
        url = reverse('loads:update-status', args=[self.load.id])

        response = self.client_for(self.other.user).post(url, {'status': 'in_progress'}, format='json')
        detail = self.client_for(self.other.user).get(reverse('loads:load-detail', args=[self.load.id]))

        self.assertEqual(response.status_code, 403)
        self.assertEqual(detail.status_code, 403)

    def test_illegal_transition_is_a_conflict(self):
        response = self.client_for(self.dispatcher).post(
            reverse('loads:update-status', args=[self.load.id]),
            {'status': 'completed'},
            format='json',
        )

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data['error_code'], 'invalid_transition')
        self.assertEqual(response.data['status'], 'assigned')

    def test_assign_without_driver_is_a_bad_request(self):
        load = make_load(reference_number="PHX-OPEN")

        response = self.client_for(self.dispatcher).post(
            reverse('loads:update-status', args=[load.id]), {'status': 'assigned'}, format='json',
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['error_code'], 'driver_required')

    def test_dispatcher_assigns_driver(self):
        load = make_load(reference_number="PHX-OPEN")

        response = self.client_for(self.dispatcher).post(
            reverse('loads:update-status', args=[load.id]),
            {'status': 'assigned', 'driver_id': self.other.id, 'reason': 'Closest truck'},
            format='json',
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['load']['driver']['id'], self.other.id)

    def test_driver_cannot_cancel_reopen_or_complete(self):
        client = self.client_for(self.driver.user)
        url = reverse('loads:update-status', args=[self.load.id])

        for target in ('cancelled', 'pending', 'completed', 'failed'):
            response = client.post(url, {'status': target}, format='json')
            self.assertEqual(response.status_code, 403, target)

        self.load.refresh_from_db()
        self.assertEqual(self.load.status, 'assigned')
        self.assertEqual(self.load.driver, self.driver)

    def test_assigning_a_busy_driver_needs_force(self):
        load = make_load(reference_number="PHX-OPEN")
        url = reverse('loads:update-status', args=[load.id])
        client = self.client_for(self.dispatcher)

        refused = client.post(url, {'status': 'assigned', 'driver_id': self.driver.id}, format='json')
        forced = client.post(url, {'status': 'assigned', 'driver_id': self.driver.id, 'force': True}, format='json')

        self.assertEqual(refused.status_code, 409)
        self.assertEqual(refused.data['error_code'], 'driver_busy')
        self.assertEqual(forced.status_code, 200)
        self.assertEqual(forced.data['load']['driver']['id'], self.driver.id)

    def test_events_endpoint_lists_history(self):
        self.client_for(self.driver.user).post(
            reverse('loads:update-status', args=[self.load.id]), {'status': 'in_progress'}, format='json',
        )

        response = self.client_for(self.dispatcher).get(reverse('loads:load-events', args=[self.load.id]))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data['status_events']), 1)
        self.assertEqual(response.data['status_events'][0]['changed_by'], self.driver.user.actor_label)
        self.assertEqual(response.data['geofence_events'], [])

    def test_suggestions_endpoint(self):
        load = make_load(reference_number="PHX-OPEN")

        response = self.client_for(self.dispatcher).get(reverse('loads:driver-suggestions', args=[load.id]))

        self.assertEqual(response.status_code, 200)
        # maria is busy with self.load
        self.assertEqual([s['driver']['username'] for s in response.data['suggestions']], ['omar'])
        self.assertIn('reasoning', response.data['suggestions'][0])

    def test_unauthenticated_requests_are_refused(self):
        response = APIClient().get(reverse('loads:load-detail', args=[self.load.id]))

        self.assertEqual(response.status_code, 401)
